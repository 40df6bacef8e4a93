"""
Response decoders for the ``status`` and ``stats`` control commands.

Both decoders are line tolerant: an unknown or malformed line is skipped and
never fails the whole decode.
"""

import logging
from typing import Optional, Tuple

from ..exceptions import DecodeError
from ..models import StatsInfo, StatusInfo

logger = logging.getLogger(__name__)

# dotted stats key prefix -> (attribute path, value type)
STATS_FIELDS = {
    "total.num.queries": (("queries", "total"), int),
    "total.num.queries_ip_ratelimited": (("queries", "ip_ratelimited"), int),
    "total.num.cachehits": (("cache", "hits"), int),
    "total.num.cachemiss": (("cache", "misses"), int),
    "total.num.prefetch": (("cache", "prefetch"), int),
    "total.num.zero_ttl": (("cache", "zero_ttl"), int),
    "total.num.recursivereplies": (("recursion", "replies"), int),
    "total.requestlist.avg": (("request_list", "average"), float),
    "total.requestlist.max": (("request_list", "max"), int),
    "total.requestlist.overwritten": (("request_list", "overwritten"), int),
    "total.requestlist.exceeded": (("request_list", "exceeded"), int),
    "total.requestlist.current.all": (("request_list", "current", "all"), int),
    "total.requestlist.current.user": (("request_list", "current", "user"), int),
    "total.recursion.time.avg": (("recursion", "time", "average"), float),
    "total.recursion.time.median": (("recursion", "time", "median"), float),
    "total.tcpusage": (("tcp_usage",), float),
}

# longest first, so the first hit is the longest matching prefix
_PREFIXES = sorted(STATS_FIELDS, key=len, reverse=True)


def format_uptime(seconds: int) -> str:
    """Render seconds as ``1d 1h 1m 5s``, starting at the largest non-zero unit."""
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)

    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _split_line(line: str, separator: str) -> Tuple[str, str]:
    key, sep, value = line.partition(separator)
    if not sep:
        raise DecodeError(f"missing '{separator}' in line: {line!r}")
    return key.strip(), value.strip()


def _apply_status_line(status: StatusInfo, key: str, value: str) -> None:
    if key == "version":
        status.version = value
    elif key == "verbosity":
        status.verbosity = _to_int(key, value)
    elif key == "threads":
        status.threads = _to_int(key, value)
    elif key == "modules":
        # "2 [ validator iterator ]": the count before the bracket is dropped
        start, end = value.find("["), value.rfind("]")
        if start != -1 and end > start:
            value = value[start + 1:end]
        status.modules = value.strip("[]").split()
    elif key == "uptime":
        tokens = value.split()
        if not tokens:
            raise DecodeError("empty uptime value")
        seconds = _to_int(key, tokens[0])
        status.uptime.seconds = seconds
        status.uptime.formatted = format_uptime(seconds)
    elif key == "options":
        if "control" in value:
            status.options.control = "open"


def _to_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise DecodeError(f"'{key}' is not an integer: {value!r}")


def parse_status_response(raw: str) -> StatusInfo:
    """Parse the raw ``status`` reply into a StatusInfo."""
    status = StatusInfo()

    for line in raw.strip().splitlines():
        try:
            key, value = _split_line(line, ":")
            _apply_status_line(status, key, value)
        except DecodeError as e:
            logger.debug(f"Skipping status line: {e}")

    return status


def match_stats_key(key: str) -> Optional[str]:
    """Return the longest known prefix of a dotted stats key, if any."""
    for prefix in _PREFIXES:
        if key.startswith(prefix):
            return prefix
    return None


def parse_stats_response(raw: str) -> StatsInfo:
    """Parse the raw ``stats`` reply (``key=value`` lines) into a StatsInfo."""
    stats = StatsInfo()

    for line in raw.strip().splitlines():
        try:
            key, value = _split_line(line, "=")
            try:
                number = float(value)
            except ValueError:
                raise DecodeError(f"'{key}' is not numeric: {value!r}")
        except DecodeError as e:
            logger.debug(f"Skipping stats line: {e}")
            continue

        prefix = match_stats_key(key)
        if prefix is None:
            continue

        path, cast = STATS_FIELDS[prefix]
        try:
            converted = cast(number)
        except (ValueError, OverflowError):
            logger.debug(f"Skipping stats line: '{key}' out of range: {value!r}")
            continue

        target = stats
        for attr in path[:-1]:
            target = getattr(target, attr)
        setattr(target, path[-1], converted)

    return stats
