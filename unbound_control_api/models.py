"""
Data models for daemon replies, zones and zone file records.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

ZONE_TYPES = ("primary", "secondary", "stub", "forward")


def has_control_chars(text: str) -> bool:
    """True if text holds a line break or other control character; tab is allowed."""
    return any(
        (ord(ch) < 32 and ch != "\t") or 127 <= ord(ch) < 160 or ch in "\u2028\u2029"
        for ch in text
    )


@dataclass
class Uptime:
    seconds: int = 0
    formatted: str = ""


@dataclass
class Options:
    control: str = ""


@dataclass
class StatusInfo:
    """Decoded reply of the ``status`` command."""

    version: str = ""
    verbosity: int = 0
    threads: int = 0
    modules: List[str] = field(default_factory=list)
    uptime: Uptime = field(default_factory=Uptime)
    options: Options = field(default_factory=Options)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class QueryStats:
    total: int = 0
    ip_ratelimited: int = 0


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    prefetch: int = 0
    zero_ttl: int = 0


@dataclass
class RecursionTime:
    average: float = 0.0
    median: float = 0.0


@dataclass
class RecursionStats:
    replies: int = 0
    time: RecursionTime = field(default_factory=RecursionTime)


@dataclass
class CurrentRequests:
    all: int = 0
    user: int = 0


@dataclass
class RequestListStats:
    average: float = 0.0
    max: int = 0
    overwritten: int = 0
    exceeded: int = 0
    current: CurrentRequests = field(default_factory=CurrentRequests)


@dataclass
class StatsInfo:
    """Decoded reply of the ``stats`` command."""

    queries: QueryStats = field(default_factory=QueryStats)
    cache: CacheStats = field(default_factory=CacheStats)
    recursion: RecursionStats = field(default_factory=RecursionStats)
    request_list: RequestListStats = field(default_factory=RequestListStats)
    tcp_usage: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


def _string_list(data: Dict, key: str) -> List[str]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


@dataclass
class Zone:
    """A zone as configured in the daemon.

    Attributes:
        name: Zone name, unique per daemon
        type: One of primary, secondary, stub, forward
        file: Path of the backing zone file, if any
        masters: Primary servers for secondary zones
        forwards: Forwarders for forward zones
    """

    name: str
    type: str
    file: Optional[str] = None
    masters: List[str] = field(default_factory=list)
    forwards: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        """Convert to the JSON form used on the wire, omitting empty optionals."""
        data = {"name": self.name, "type": self.type}
        if self.file:
            data["file"] = self.file
        if self.masters:
            data["masters"] = list(self.masters)
        if self.forwards:
            data["forwards"] = list(self.forwards)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Zone":
        """Create a Zone from its JSON form."""
        if not isinstance(data, dict):
            raise ValueError("zone must be a JSON object")
        name = data.get("name")
        zone_type = data.get("type")
        if not isinstance(name, str) or not name:
            raise ValueError("zone 'name' is required")
        if not isinstance(zone_type, str) or not zone_type:
            raise ValueError("zone 'type' is required")
        zone_file = data.get("file") or None
        if zone_file is not None and not isinstance(zone_file, str):
            raise ValueError("zone 'file' must be a string")
        return cls(
            name=name,
            type=zone_type,
            file=zone_file,
            masters=_string_list(data, "masters"),
            forwards=_string_list(data, "forwards"),
        )


@dataclass
class Record:
    """A single resource record line of a zone file.

    ``ttl`` of 0 means the record inherits the zone default. ``rclass`` is
    serialized as ``class``.
    """

    name: str
    type: str
    rdata: str
    ttl: int = 0
    rclass: str = ""
    comments: str = ""

    def matches(self, name: str, record_type: str) -> bool:
        return (
            self.name.lower() == name.lower()
            and self.type.upper() == record_type.upper()
        )

    def key(self):
        return (self.name, self.ttl, self.rclass, self.type, self.rdata)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "ttl": self.ttl,
            "class": self.rclass,
            "type": self.type,
            "rdata": self.rdata,
            "comments": self.comments,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Record":
        """Create a Record from its JSON form. ``class`` defaults to IN."""
        if not isinstance(data, dict):
            raise ValueError("record must be a JSON object")
        for key in ("name", "type", "rdata"):
            if not isinstance(data.get(key), str) or not data[key].strip():
                raise ValueError(f"record '{key}' is required")
        ttl = data.get("ttl", 0)
        if isinstance(ttl, bool) or not isinstance(ttl, int):
            raise ValueError("record 'ttl' must be an integer")
        rclass = data.get("class", "IN")
        if not isinstance(rclass, str):
            raise ValueError("record 'class' must be a string")
        comments = data.get("comments") or ""
        if not isinstance(comments, str):
            raise ValueError("record 'comments' must be a string")
        for key, value in (("name", data["name"]), ("type", data["type"]),
                           ("rdata", data["rdata"]), ("class", rclass), ("comments", comments)):
            if has_control_chars(value):
                raise ValueError(f"record '{key}' must not contain line breaks or control characters")
        return cls(
            name=data["name"].strip(),
            type=data["type"].strip(),
            rdata=data["rdata"].strip(),
            ttl=ttl,
            rclass=rclass.strip(),
            comments=comments.strip(),
        )
