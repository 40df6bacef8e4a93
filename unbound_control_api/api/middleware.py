"""
Request middleware for the HTTP API: API-key authentication, per-client
rate limiting and request logging.
"""

import hmac
import logging
import threading
import time
from typing import Dict, Optional

from flask import Flask, g, jsonify, request

logger = logging.getLogger(__name__)

AUTH_HEADER_KEY = "X-API-Key"

# buckets untouched for this long are dropped
BUCKET_IDLE_SECONDS = 3600
CLEANUP_INTERVAL_SECONDS = 3600

# reachable without an API key and without spending a token
PUBLIC_ENDPOINTS = {"health"}


def get_client_ip() -> str:
    """Client address: first X-Forwarded-For entry, then X-Real-IP, then the peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip

    return request.remote_addr or "unknown"


class _Bucket:
    __slots__ = ("tokens", "last_refill")

    def __init__(self, tokens: float, now: float):
        self.tokens = tokens
        self.last_refill = now


class RateLimiter:
    """Token bucket per client.

    Each bucket starts full at ``burst`` tokens and refills at ``rate`` tokens
    per second; every request costs one token.
    """

    def __init__(self, rate: float, burst: int, clock=time.monotonic):
        self.rate = float(rate)
        self.burst = int(burst)
        self._clock = clock
        self._buckets: Dict[str, _Bucket] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def allow(self, client: str) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_cleanup >= CLEANUP_INTERVAL_SECONDS:
                self._cleanup(now)

            bucket = self._buckets.get(client)
            if bucket is None:
                bucket = self._buckets[client] = _Bucket(float(self.burst), now)
            else:
                elapsed = now - bucket.last_refill
                bucket.tokens = min(float(self.burst), bucket.tokens + elapsed * self.rate)
                bucket.last_refill = now

            if bucket.tokens >= 1:
                bucket.tokens -= 1
                return True
            return False

    def _cleanup(self, now: float) -> None:
        stale = [
            client
            for client, bucket in self._buckets.items()
            if now - bucket.last_refill > BUCKET_IDLE_SECONDS
        ]
        for client in stale:
            del self._buckets[client]
        self._last_cleanup = now
        if stale:
            logger.debug(f"Purged {len(stale)} idle rate limit bucket(s)")

    def __len__(self) -> int:
        return len(self._buckets)


def error_response(status_code: int, code: str, message: str, details: Optional[Dict] = None):
    """Build the JSON failure envelope."""
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return jsonify({"success": False, "error": error}), status_code


def register_middleware(app: Flask, api_key: str, rate_limiter: Optional[RateLimiter]) -> None:
    """Install the logging, rate limiting and authentication hooks on ``app``."""
    if not api_key:
        logger.warning("No API key configured, authentication is disabled")

    @app.before_request
    def start_timer():
        g.request_started = time.monotonic()

    @app.before_request
    def limit_rate():
        if request.endpoint in PUBLIC_ENDPOINTS or rate_limiter is None:
            return None
        client_ip = get_client_ip()
        if not rate_limiter.allow(client_ip):
            logger.warning(f"Rate limit exceeded for {client_ip}")
            return error_response(429, "RATE_LIMITED", "Too many requests")
        return None

    @app.before_request
    def check_api_key():
        if not api_key or request.endpoint in PUBLIC_ENDPOINTS:
            return None
        provided = request.headers.get(AUTH_HEADER_KEY)
        if not provided:
            return error_response(401, "UNAUTHORIZED", "Unauthorized - Missing API key")
        if not hmac.compare_digest(provided.encode("utf-8"), api_key.encode("utf-8")):
            logger.warning(f"Invalid API key from {get_client_ip()}")
            return error_response(401, "UNAUTHORIZED", "Unauthorized - Invalid API key")
        return None

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        duration_ms = (time.monotonic() - started) * 1000 if started is not None else 0.0
        message = (
            f"{request.method} {request.path} from {get_client_ip()} "
            f"-> {response.status_code} in {duration_ms:.1f}ms"
        )
        if response.status_code >= 400:
            logger.error(message)
        else:
            logger.info(message)
        return response
