"""
Zone file engine - parse, mutate and write flat DNS zone files.

Record lines are positional and the TTL and class fields are optional, so
each line is interpreted with a field-position heuristic. Output always puts
directives first, then the SOA record, then every other record in its
original order.
"""

import logging
import os
import re
import stat
import tempfile
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple

import dns.exception
import dns.rdataclass
import dns.rdatatype
import dns.ttl

from ..exceptions import ZoneFileError
from ..models import Record, has_control_chars

logger = logging.getLogger(__name__)

SERIAL_MODULO = 2 ** 32


@dataclass
class ZoneFile:
    """An in-memory zone file: its name and ordered records."""

    name: str
    records: List[Record] = field(default_factory=list)
    directives: List[str] = field(default_factory=list)

    def add_record(self, record: Record) -> None:
        """Append a copy of the record."""
        self.records.append(replace(record))

    def remove_record(self, name: str, record_type: str) -> int:
        """Delete every record matching (name, type) and return how many went."""
        kept = [r for r in self.records if not r.matches(name, record_type)]
        removed = len(self.records) - len(kept)
        self.records = kept
        return removed

    def update_record(self, record: Record) -> bool:
        """Replace the first record matching the new record's (name, type)."""
        for i, existing in enumerate(self.records):
            if existing.matches(record.name, record.type):
                self.records[i] = replace(record)
                return True
        return False

    def get_record(self, name: str, record_type: str) -> Optional[Record]:
        """Return the first record matching (name, type), or None."""
        for record in self.records:
            if record.matches(name, record_type):
                return record
        return None

    def get_soa(self) -> Optional[Record]:
        for record in self.records:
            if record.type.upper() == "SOA":
                return record
        return None

    def increment_serial(self) -> bool:
        """Increment the SOA serial so the change is picked up on reload."""
        soa = self.get_soa()
        if soa is None:
            return False

        tokens = soa.rdata.split()
        if len(tokens) < 3 or not tokens[2].isdigit():
            logger.warning(f"SOA record in {self.name} has no numeric serial, not incremented")
            return False

        current_serial = int(tokens[2])
        new_serial = (current_serial + 1) % SERIAL_MODULO
        tokens[2] = str(new_serial)
        soa.rdata = " ".join(tokens)
        logger.debug(f"Incremented serial from {current_serial} to {new_serial}")
        return True

    def ordered_records(self) -> List[Record]:
        """Records in write order: the first SOA, then the rest as they are."""
        soa = self.get_soa()
        if soa is None:
            return list(self.records)
        return [soa] + [r for r in self.records if r is not soa]

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "directives": list(self.directives),
            "records": [r.to_dict() for r in self.records],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ZoneFile":
        if not isinstance(data, dict):
            raise ValueError("zone file must be a JSON object")
        records = data.get("records")
        if not isinstance(records, list):
            raise ValueError("zone file 'records' must be a list")
        directives = data.get("directives") or []
        if not isinstance(directives, list) or not all(
            isinstance(d, str) and d.startswith("$") for d in directives
        ):
            raise ValueError("zone file 'directives' must be a list of '$' lines")
        if any(has_control_chars(d) for d in directives):
            raise ValueError("zone file directives must not contain line breaks or control characters")
        name = data.get("name") or ""
        if not isinstance(name, str):
            raise ValueError("zone file 'name' must be a string")
        return cls(
            name=name,
            records=[Record.from_dict(r) for r in records],
            directives=[d.strip() for d in directives],
        )


def _split_inline_comment(line: str) -> Tuple[str, str]:
    """Split ``data ; comment`` on the first semicolon outside quotes."""
    in_quotes = False
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_quotes = not in_quotes
        elif ch == ";" and not in_quotes:
            return line[:i].rstrip(), line[i + 1:].strip()
    return line, ""


def _paren_depth(data: str) -> int:
    depth = 0
    in_quotes = False
    escaped = False
    for ch in data:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
    return depth


def _strip_parens(data: str) -> str:
    """Drop grouping parentheses and squeeze whitespace outside quoted strings."""
    if "(" not in data and ")" not in data:
        return data
    out = []
    in_quotes = False
    escaped = False
    for ch in data:
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            in_quotes = not in_quotes
        elif not in_quotes and (ch in "()" or ch.isspace()):
            if out and out[-1] != " ":
                out.append(" ")
            continue
        out.append(ch)
    return "".join(out).strip()


def _logical_lines(text: str) -> Iterator[Tuple[str, str]]:
    """Yield (data, inline comment) pairs, joining parenthesised continuations.

    Blank and comment lines outside a parenthesised block are passed through
    unchanged with an empty inline comment.
    """
    pending: Optional[List[str]] = None
    pending_comment = ""

    for raw in text.splitlines():
        line = raw.strip()

        if pending is None and (not line or line.startswith(";")):
            yield line, ""
            continue

        data, comment = _split_inline_comment(line)

        if pending is not None:
            # comments inside the block annotate single fields
            pending.append(data)
            if _paren_depth(" ".join(pending)) <= 0:
                yield _strip_parens(" ".join(pending)), pending_comment
                pending = None
            continue

        if _paren_depth(data) > 0:
            pending = [data]
            pending_comment = comment
            continue

        yield _strip_parens(data), comment

    if pending is not None:
        logger.warning("Unterminated parenthesis at end of zone file")
        yield _strip_parens(" ".join(pending)), pending_comment


def _parse_ttl(token: str) -> Optional[int]:
    """Parse a TTL in seconds or with BIND units such as ``1h`` or ``2d12h``."""
    try:
        return dns.ttl.from_text(token)
    except dns.exception.DNSException:
        return None


def _is_record_type(token: str) -> bool:
    try:
        dns.rdataclass.from_text(token)
        return False
    except dns.exception.DNSException:
        pass

    try:
        dns.rdatatype.from_text(token)
        return True
    except dns.exception.DNSException:
        return False


def _find_type_index(fields: List[str]) -> Optional[int]:
    # the type can follow at most a TTL and a class, and needs data after it
    for i in range(1, min(4, len(fields) - 1)):
        if _is_record_type(fields[i]):
            return i
    return None


def parse_record_line(line: str) -> Optional[Record]:
    """
    Parse one record line.

    The record data is kept exactly as written after the type, so spacing
    inside quoted strings survives a rewrite.

    Args:
        line: A trimmed line with comments and parentheses removed

    Returns:
        The Record, or None when the line has fewer than three fields
    """
    spans = list(re.finditer(r"\S+", line))
    fields = [m.group() for m in spans]
    if len(fields) < 3:
        return None

    ttl: Optional[int] = None
    rclass = ""
    type_index = _find_type_index(fields)

    if type_index is not None:
        record_type = fields[type_index]
        rdata = line[spans[type_index + 1].start():].rstrip()
        for token in fields[1:type_index]:
            parsed = _parse_ttl(token)
            if parsed is not None and ttl is None:
                ttl = parsed
            elif not rclass:
                rclass = token
            else:
                logger.debug(f"Ignoring extra field {token!r} in zone line {line!r}")
    else:
        record_type = fields[-2]
        rdata = fields[-1]
        if len(fields) > 3:
            ttl = _parse_ttl(fields[1])
            rclass = fields[2] if ttl is not None else fields[1]

    return Record(
        name=fields[0],
        ttl=ttl or 0,
        rclass=rclass,
        type=record_type,
        rdata=rdata,
    )


def parse_zone_text(text: str, name: str = "") -> ZoneFile:
    """Parse zone file text into a ZoneFile."""
    zone_file = ZoneFile(name=name)
    pending_comment = ""

    for line_number, (data, inline_comment) in enumerate(_logical_lines(text), start=1):
        if not data:
            pending_comment = ""
            continue

        if data.startswith(";"):
            if not pending_comment:
                pending_comment = data[1:].strip()
            continue

        if data.startswith("$"):
            zone_file.directives.append(data)
            pending_comment = ""
            continue

        record = parse_record_line(data)
        if record is None:
            logger.debug(f"Skipping invalid zone line {line_number} in {name}: {data!r}")
            pending_comment = ""
            continue

        record.comments = pending_comment or inline_comment
        pending_comment = ""
        zone_file.records.append(record)

    return zone_file


def load_zone_file(file_path: str) -> ZoneFile:
    """Load a zone file from disk."""
    try:
        with open(file_path, "r") as f:
            text = f.read()
    except FileNotFoundError:
        raise ZoneFileError(f"zone file not found: {file_path}", path=file_path)
    except (OSError, UnicodeDecodeError) as e:
        raise ZoneFileError(f"failed to read zone file {file_path}: {e}", path=file_path)

    zone_file = parse_zone_text(text, name=os.path.basename(file_path))
    logger.info(f"Loaded {len(zone_file.records)} records from {file_path}")
    return zone_file


def format_record(record: Record) -> List[str]:
    """Render a record as its zone file line(s)."""
    lines = []
    if record.comments:
        lines.append(f"; {record.comments}")

    fields = [record.name]
    if record.ttl > 0:
        fields.append(str(record.ttl))
    if record.rclass:
        fields.append(record.rclass)
    fields.extend([record.type, record.rdata])
    lines.append("\t".join(fields))
    return lines


def render_zone_file(zone_file: ZoneFile) -> str:
    """Render a ZoneFile as text: directives, SOA, then the other records."""
    lines = list(zone_file.directives)
    for record in zone_file.ordered_records():
        lines.extend(format_record(record))
    return "\n".join(lines) + "\n" if lines else ""


def save_zone_file(file_path: str, zone_file: ZoneFile) -> None:
    """Write a zone file to disk, replacing the old file in one rename."""
    content = render_zone_file(zone_file)
    directory = os.path.dirname(os.path.abspath(file_path))

    try:
        os.makedirs(directory, exist_ok=True)

        try:
            mode = stat.S_IMODE(os.stat(file_path).st_mode)
        except FileNotFoundError:
            mode = 0o644

        fd, tmp_path = tempfile.mkstemp(prefix=".zone-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, file_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        logger.error(f"Failed to write zone file {file_path}: {e}")
        raise ZoneFileError(f"failed to write zone file {file_path}: {e}", path=file_path)

    logger.info(f"Wrote {len(zone_file.records)} records to {file_path}")
