"""Flask application exposing the control client and zone manager over HTTP."""

import logging
from typing import Dict, Optional

from flask import Blueprint, Flask, current_app, jsonify, request

from .. import __version__
from ..core.zone_manager import ZoneManager
from ..exceptions import (
    ControlAPIError,
    DecodeError,
    PartialFailureError,
    ProtocolError,
    RecordNotFoundError,
    TransportError,
    ZoneFileError,
)
from ..models import Record, Zone
from ..parsers.zonefile import ZoneFile
from ..transports.control_client import ControlClient
from .middleware import RateLimiter, error_response, register_middleware

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api/v1")


def success_response(data=None, status_code: int = 200):
    """Build the JSON success envelope."""
    return jsonify({"success": True, "data": data}), status_code


def _json_body() -> Dict:
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValueError("Invalid request payload")
    return payload


def _client() -> ControlClient:
    return current_app.control_client


def _zones() -> ZoneManager:
    return current_app.zone_manager


# Daemon commands
@api.route("/status", methods=["GET"])
def get_status():
    return success_response(_client().status().to_dict())


@api.route("/reload", methods=["POST"])
def reload():
    _client().reload()
    return success_response({"message": "Unbound configuration reloaded"})


@api.route("/flush", methods=["DELETE"])
def flush():
    domain = request.args.get("domain", "").strip()
    if not domain:
        raise ValueError("query parameter 'domain' is required")
    _client().flush(domain)
    return success_response({"message": f"Cache flushed for {domain}"})


@api.route("/stats", methods=["GET"])
def get_stats():
    return success_response(_client().stats().to_dict())


@api.route("/info", methods=["GET"])
def get_info():
    return success_response({"info": _client().info()})


# Zones
@api.route("/zones", methods=["GET"])
def list_zones():
    return success_response([zone.to_dict() for zone in _client().list_zones()])


@api.route("/zones", methods=["POST"])
def add_zone():
    zone = Zone.from_dict(_json_body())
    _client().add_zone(zone)
    return success_response(zone.to_dict(), 201)


@api.route("/zones/<name>", methods=["GET"])
def get_zone(name):
    return success_response(_client().get_zone(name).to_dict())


@api.route("/zones/<name>", methods=["PUT"])
def update_zone(name):
    zone = Zone.from_dict(_json_body())
    if zone.name != name:
        raise ValueError("Zone name mismatch")
    _client().update_zone(zone)
    return success_response(zone.to_dict())


@api.route("/zones/<name>", methods=["DELETE"])
def remove_zone(name):
    _client().remove_zone(name)
    return success_response({"message": f"Zone {name} removed"})


# Zone files and records
@api.route("/zones/<name>/file", methods=["GET"])
def get_zone_file(name):
    return success_response(_zones().get_zone_file(name).to_dict())


@api.route("/zones/<name>/file", methods=["PUT"])
def update_zone_file(name):
    zone_file = ZoneFile.from_dict(_json_body())
    _zones().update_zone_file(name, zone_file)
    return success_response(zone_file.to_dict())


@api.route("/zones/<name>/records", methods=["POST"])
def add_zone_record(name):
    record = Record.from_dict(_json_body())
    _zones().add_zone_record(name, record)
    return success_response(record.to_dict(), 201)


@api.route("/zones/<name>/records/<record_name>/<record_type>", methods=["GET"])
def get_zone_record(name, record_name, record_type):
    return success_response(_zones().get_zone_record(name, record_name, record_type).to_dict())


@api.route("/zones/<name>/records/<record_name>/<record_type>", methods=["PUT"])
def update_zone_record(name, record_name, record_type):
    record = Record.from_dict(_json_body())
    if not record.matches(record_name, record_type):
        raise ValueError("Record name or type mismatch")
    _zones().update_zone_record(name, record)
    return success_response(record.to_dict())


@api.route("/zones/<name>/records/<record_name>/<record_type>", methods=["DELETE"])
def remove_zone_record(name, record_name, record_type):
    removed = _zones().remove_zone_record(name, record_name, record_type)
    return success_response({"removed": removed})


def _handle_control_error(error: ControlAPIError):
    if isinstance(error, PartialFailureError):
        return error_response(500, "PARTIAL_FAILURE", str(error), {"path": error.path})
    if isinstance(error, RecordNotFoundError):
        return error_response(404, "NOT_FOUND", str(error))
    if isinstance(error, TransportError):
        return error_response(503, "UNBOUND_UNAVAILABLE", str(error))
    if isinstance(error, (ProtocolError, DecodeError)):
        return error_response(502, "UNBOUND_ERROR", str(error))
    if isinstance(error, ZoneFileError):
        return error_response(500, "ZONE_FILE_ERROR", str(error), {"path": error.path} if error.path else None)
    logger.exception(f"Unhandled control API error: {error}")
    return error_response(500, "INTERNAL_ERROR", str(error))


def _handle_value_error(error: ValueError):
    return error_response(400, "BAD_REQUEST", str(error))


def create_app(
    config: Dict,
    control_client: Optional[ControlClient] = None,
    zone_manager: Optional[ZoneManager] = None,
) -> Flask:
    """Create the Flask application.

    Args:
        config: Full application configuration
        control_client: Client to use instead of one built from ``config["unbound"]``
        zone_manager: Zone manager to use instead of one built around the client

    Returns:
        The configured Flask app
    """
    app = Flask(__name__)

    # Store services on the app
    app.control_client = control_client or ControlClient(config.get("unbound", {}))
    app.zone_manager = zone_manager or ZoneManager(app.control_client, config.get("zones", {}))
    app.config_obj = config

    rate_config = config.get("rate_limit") or {}
    rate_limiter = None
    if rate_config.get("requests_per_second", 0) > 0:
        rate_limiter = RateLimiter(
            rate_config["requests_per_second"], rate_config.get("burst_size", 1)
        )
    app.rate_limiter = rate_limiter

    api_key = (config.get("security") or {}).get("api_key", "")
    register_middleware(app, api_key, rate_limiter)

    app.register_blueprint(api)
    app.register_error_handler(ControlAPIError, _handle_control_error)
    app.register_error_handler(ValueError, _handle_value_error)

    @app.route("/health", methods=["GET"])
    def health():
        """Report whether the API is up and the daemon answers."""
        health_status = {"api": "ok", "version": __version__, "unbound": "ok"}
        try:
            health_status["unbound_version"] = app.control_client.test_connection().version
        except ControlAPIError as e:
            logger.warning(f"Health check could not reach Unbound: {e}")
            health_status["unbound"] = "unavailable"
            return jsonify({"success": False, "data": health_status}), 503
        return success_response(health_status)

    @app.errorhandler(404)
    def not_found(_error):
        return error_response(404, "NOT_FOUND", "Resource not found")

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return error_response(405, "METHOD_NOT_ALLOWED", "Method not allowed")

    return app
