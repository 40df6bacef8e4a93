"""
Step definitions for Unbound Control API integration tests.
"""

from behave import given, then, when

from unbound_control_api.api.app import create_app
from unbound_control_api.models import Record
from unbound_control_api.parsers.zonefile import load_zone_file
from unbound_control_api.transports.control_client import ControlClient
from unbound_control_api.transports.mock_transport import MockTransport
from unbound_control_api.utils.config import get_default_config


def _headers(context):
    return {"X-API-Key": context.api_key}


def _records_url(context, name=None, rtype=None):
    url = f"/api/v1/zones/{context.test_zone}/records"
    if name is not None:
        url = f"{url}/{name}/{rtype}"
    return url


def _zone_file(context):
    return load_zone_file(str(context.zone_file_path))


@given("the control API is running against a mock Unbound with the test zone")
def step_impl(context):
    """Build the app around a mock daemon that knows the test zone."""
    context.transport = MockTransport(
        {
            "zones": [
                {"name": context.test_zone, "type": "primary", "file": str(context.zone_file_path)}
            ],
        }
    )
    config = get_default_config()
    config["security"]["api_key"] = context.api_key
    context.app = create_app(config, ControlClient({}, transport=context.transport))
    context.client = context.app.test_client()


@given('Unbound rejects the "{command}" command')
def step_impl(context, command):
    context.transport.fail_commands.add(command)


@given('the zone file has an "{rtype}" record "{name}" with data "{rdata}"')
def step_impl(context, rtype, name, rdata):
    context.app.zone_manager.add_zone_record(
        context.test_zone, Record(name=name, type=rtype, rdata=rdata, rclass="IN")
    )


@when('I add an "{rtype}" record "{name}" with data "{rdata}"')
def step_impl(context, rtype, name, rdata):
    context.response = context.client.post(
        _records_url(context),
        json={"name": name, "type": rtype, "rdata": rdata, "ttl": 300},
        headers=_headers(context),
    )


@when('I update the "{rtype}" record "{name}" to data "{rdata}"')
def step_impl(context, rtype, name, rdata):
    context.response = context.client.put(
        _records_url(context, name, rtype),
        json={"name": name, "type": rtype, "rdata": rdata},
        headers=_headers(context),
    )


@when('I remove the "{rtype}" record "{name}"')
def step_impl(context, rtype, name):
    context.response = context.client.delete(
        _records_url(context, name, rtype), headers=_headers(context)
    )


@when("I request the zone file without an API key")
def step_impl(context):
    context.response = context.client.get(f"/api/v1/zones/{context.test_zone}/file")


@when('I request "{path}"')
def step_impl(context, path):
    context.response = context.client.get(path, headers=_headers(context))


@when('I flush the cache for "{domain}"')
def step_impl(context, domain):
    context.response = context.client.delete(
        f"/api/v1/flush?domain={domain}", headers=_headers(context)
    )


@then("the response status is {status:d}")
def step_impl(context, status):
    assert context.response.status_code == status, (
        f"expected {status}, got {context.response.status_code}: {context.response.get_data(as_text=True)}"
    )


@then('the error code is "{code}"')
def step_impl(context, code):
    assert context.response.get_json()["error"]["code"] == code


@then('the response data field "{field}" is "{value}"')
def step_impl(context, field, value):
    assert context.response.get_json()["data"][field] == value


@then('the zone file contains an "{rtype}" record "{name}" with data "{rdata}"')
def step_impl(context, rtype, name, rdata):
    record = _zone_file(context).get_record(name, rtype)
    assert record is not None, f"{name} {rtype} not in zone file"
    assert record.rdata == rdata, f"expected {rdata}, got {record.rdata}"


@then('the zone file has no "{rtype}" record "{name}"')
def step_impl(context, rtype, name):
    assert _zone_file(context).get_record(name, rtype) is None


@then("the SOA record is still first in the zone file")
def step_impl(context):
    assert _zone_file(context).records[0].type == "SOA"


@then('the SOA serial is "{serial}"')
def step_impl(context, serial):
    assert _zone_file(context).get_soa().rdata.split()[2] == serial


@then("Unbound was reloaded {count:d} time")
def step_impl(context, count):
    assert context.transport.reload_count == count


@then('Unbound received the command "{command}"')
def step_impl(context, command):
    assert command in context.transport.commands, context.transport.commands
