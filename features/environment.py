"""
Behave environment configuration for Unbound Control API integration tests.

Scenarios drive the HTTP API against the mock control transport and zone
files in a temporary directory, so no running resolver is needed.
"""

import logging
import shutil
import tempfile
from pathlib import Path

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_KEY = "behave-key"

ZONE_TEXT = """$TTL 3600
@ IN SOA ns1.test.example. hostmaster.test.example. 2024010101 7200 3600 1209600 3600
@ IN NS ns1.test.example.
ns1 IN A 192.0.2.53
"""


def before_all(context):
    """Set up shared test settings."""
    context.base_dir = Path(__file__).parent.parent
    context.test_zone = "test.example"
    context.api_key = API_KEY
    logger.info("Test environment setup complete")


def before_scenario(context, scenario):
    """Give every scenario its own zone file."""
    context.test_data_dir = Path(tempfile.mkdtemp(prefix="unbound-behave-"))
    context.zone_file_path = context.test_data_dir / f"{context.test_zone}.zone"
    context.zone_file_path.write_text(ZONE_TEXT)
    context.fail_commands = []
    context.response = None

    logger.info(f"Starting scenario: {scenario.name}")


def after_scenario(context, scenario):
    """Clean up after each test scenario."""
    shutil.rmtree(context.test_data_dir, ignore_errors=True)
    logger.info(f"Completed scenario: {scenario.name}")
