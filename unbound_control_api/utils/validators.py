"""
Validators - Input validation for zones, records and control commands

This module checks names, record types, classes and TTLs with dnspython
before anything is sent to the daemon or written to a zone file.
"""

import logging
from typing import List

import dns.exception
import dns.name
import dns.rdataclass
import dns.rdatatype

from ..models import ZONE_TYPES, Record, Zone, has_control_chars

logger = logging.getLogger(__name__)

MAX_TTL = 2147483647


def validate_zone_name(zone: str) -> bool:
    """
    Validate DNS zone name.

    Args:
        zone: The zone name to validate, absolute or relative

    Returns:
        True if valid, False otherwise
    """
    if not zone or not isinstance(zone, str):
        return False

    if any(ch.isspace() for ch in zone):
        logger.warning(f"Zone name contains whitespace: {zone!r}")
        return False

    try:
        dns.name.from_text(zone)
    except dns.exception.DNSException as e:
        logger.warning(f"Invalid zone name '{zone}': {e}")
        return False

    return True


def validate_record_name(name: str) -> bool:
    """Validate a record owner name; ``@`` and wildcards are accepted."""
    if name == "@":
        return True
    return validate_zone_name(name)


def validate_record_type(record_type: str) -> bool:
    """Validate an RR type mnemonic such as A, MX or TYPE65."""
    if not record_type or not isinstance(record_type, str):
        return False

    try:
        dns.rdatatype.from_text(record_type)
    except dns.exception.DNSException:
        return False

    return True


def validate_record_class(record_class: str) -> bool:
    """Validate a class mnemonic; an empty class is allowed."""
    if record_class == "":
        return True

    try:
        dns.rdataclass.from_text(record_class)
    except dns.exception.DNSException:
        return False

    return True


def validate_ttl(ttl: int) -> bool:
    """Validate a TTL; 0 means the record inherits the zone default."""
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        return False
    return 0 <= ttl <= MAX_TTL


def validate_record(record: Record) -> None:
    """
    Validate a record before it is written to a zone file.

    Raises:
        ValueError: listing every problem found
    """
    errors: List[str] = []

    if not validate_record_name(record.name):
        errors.append(f"invalid record name '{record.name}'")
    if not validate_record_type(record.type):
        errors.append(f"invalid record type '{record.type}'")
    if not validate_record_class(record.rclass):
        errors.append(f"invalid record class '{record.rclass}'")
    if not validate_ttl(record.ttl):
        errors.append(f"invalid TTL '{record.ttl}'")
    if not record.rdata:
        errors.append("record data is empty")
    for label, value in (("name", record.name), ("type", record.type), ("class", record.rclass),
                         ("data", record.rdata), ("comments", record.comments)):
        if has_control_chars(value):
            errors.append(f"record {label} must not contain line breaks or control characters")

    if errors:
        raise ValueError("; ".join(errors))


def validate_zone(zone: Zone) -> None:
    """
    Validate a zone definition before it is sent to the daemon.

    Raises:
        ValueError: listing every problem found
    """
    errors: List[str] = []

    if not validate_zone_name(zone.name):
        errors.append(f"invalid zone name '{zone.name}'")
    if zone.type not in ZONE_TYPES:
        errors.append(
            f"invalid zone type '{zone.type}', expected one of {', '.join(ZONE_TYPES)}"
        )

    if errors:
        raise ValueError("; ".join(errors))


def validate_command(command: str) -> None:
    """
    Validate a control command line.

    Raises:
        ValueError: if the command is empty, not ASCII or spans lines
    """
    if not command or not command.strip():
        raise ValueError("command must not be empty")
    if "\n" in command or "\r" in command:
        raise ValueError("command must not contain line breaks")
    try:
        command.encode("ascii")
    except UnicodeEncodeError:
        raise ValueError("command must be ASCII")
