"""
Configuration loading and logging setup.

Configuration is read once from YAML and passed to constructors explicitly.
"""

import copy
import logging
import logging.handlers
import os
import sys
from typing import Dict

import yaml

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

API_KEY_ENV = "UNBOUND_API_KEY"


def get_default_config() -> Dict:
    """Return default configuration."""
    return {
        "server": {
            "host": "127.0.0.1",
            "port": 8080,
            "use_tls": False,
            "cert_file": "",
            "key_file": "",
        },
        "unbound": {
            "transport": "tls",
            "control_host": "127.0.0.1",
            "control_port": 8953,
            "control_cert": "",
            "control_key": "",
            "control_ca": "",
            "control_socket": "/run/unbound.ctl",
            "connect_timeout": 10,
            "read_timeout": 5,
            "write_timeout": 5,
        },
        "security": {"api_key": ""},
        "rate_limit": {"requests_per_second": 10, "burst_size": 20},
        "zones": {"bump_serial": True},
        "logging": {
            "level": "INFO",
            "file": "",
            "use_syslog": False,
            "app_name": "unbound-control-api",
        },
    }


def merge_config(base: Dict, override: Dict) -> Dict:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str) -> Dict:
    """Load configuration from YAML file, merged over the defaults."""
    defaults = get_default_config()
    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        logger.info(f"Configuration loaded from {config_path}")
    except FileNotFoundError:
        logger.warning(f"Config file {config_path} not found, using defaults")
        loaded = {}
    except yaml.YAMLError as e:
        logger.error(f"Error parsing config file: {e}")
        raise ConfigError(f"Error parsing config file {config_path}: {e}")

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    config = merge_config(defaults, loaded)

    api_key = os.environ.get(API_KEY_ENV)
    if api_key:
        config["security"]["api_key"] = api_key

    return config


def config_logger(config: Dict):
    """Configure logging."""
    logging_config = config.get("logging") or {}
    log_level = str(logging_config.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log_level = "INFO"

    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = logging_config.get("file")
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    syslog_error = None
    if logging_config.get("use_syslog"):
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address="/dev/log",
                facility=logging.handlers.SysLogHandler.LOG_DAEMON,
            )
            app_name = logging_config.get("app_name", "unbound-control-api")
            syslog_handler.setFormatter(
                logging.Formatter(f"{app_name}: %(name)s - %(levelname)s - %(message)s")
            )
            handlers.append(syslog_handler)
        except OSError as e:
            syslog_error = e

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    if syslog_error is not None:
        logger.error(
            f"Failed to initialize syslog, falling back to console output: {syslog_error}"
        )
