"""
Zone Manager - File-backed zone and record operations

This module resolves a zone's backing file through the control client,
applies record changes to the whole file and reloads the daemon, reporting a
written-but-not-reloaded file as a partial failure.
"""

import logging
import threading
from typing import Callable, Dict, Optional

from ..exceptions import (
    PartialFailureError,
    ProtocolError,
    RecordNotFoundError,
    TransportError,
    ZoneFileError,
)
from ..models import Record
from ..parsers.zonefile import ZoneFile, load_zone_file, save_zone_file
from ..utils.validators import validate_record

module_logger = logging.getLogger(__name__)


class ZoneManager:
    """Manages zone file reads, record mutations and reloads."""

    def __init__(
        self,
        control_client,
        config: Optional[Dict] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize zone manager with a control client and the ``zones`` section."""
        config = config or {}
        self.control_client = control_client
        self.bump_serial = config.get("bump_serial", True)
        self.logger = logger or module_logger
        self._zone_locks: Dict[str, threading.Lock] = {}
        self._zone_locks_guard = threading.Lock()

    def _zone_lock(self, zone_name: str) -> threading.Lock:
        """Lock guarding read-modify-write of one zone's file in this process."""
        with self._zone_locks_guard:
            lock = self._zone_locks.get(zone_name)
            if lock is None:
                lock = self._zone_locks[zone_name] = threading.Lock()
            return lock

    def resolve_zone_file_path(self, zone_name: str) -> str:
        """Ask the daemon for the zone's backing file path."""
        zone = self.control_client.get_zone(zone_name)
        if not zone.file:
            raise ZoneFileError(f"zone {zone_name} does not have a file path configured")
        return zone.file

    def get_zone_file(self, zone_name: str) -> ZoneFile:
        """Load the zone's file from disk."""
        return load_zone_file(self.resolve_zone_file_path(zone_name))

    def update_zone_file(self, zone_name: str, zone_file: ZoneFile) -> None:
        """Replace the zone's file and reload the daemon."""
        for record in zone_file.records:
            validate_record(record)

        with self._zone_lock(zone_name):
            file_path = self.resolve_zone_file_path(zone_name)
            self._write_and_reload(zone_name, file_path, zone_file)

    def _write_and_reload(self, zone_name: str, file_path: str, zone_file: ZoneFile) -> None:
        save_zone_file(file_path, zone_file)

        try:
            self.control_client.reload()
        except (TransportError, ProtocolError) as e:
            self.logger.error(
                f"Zone file {file_path} for {zone_name} was written but reload failed: {e}"
            )
            raise PartialFailureError(
                f"zone file {file_path} was updated but reloading Unbound failed: {e}",
                path=file_path,
                cause=e,
            )

        self.logger.info(f"Zone {zone_name} written to {file_path} and reloaded")

    def _modify(
        self, zone_name: str, mutate: Callable[[ZoneFile], bool], record_type: str
    ) -> ZoneFile:
        """Read the whole file, apply one mutation, write it back and reload.

        The serial is bumped after any change that does not target the SOA.
        """
        with self._zone_lock(zone_name):
            file_path = self.resolve_zone_file_path(zone_name)
            zone_file = load_zone_file(file_path)

            changed = mutate(zone_file)
            if changed and self.bump_serial and record_type.upper() != "SOA":
                zone_file.increment_serial()

            self._write_and_reload(zone_name, file_path, zone_file)
            return zone_file

    def add_zone_record(self, zone_name: str, record: Record) -> None:
        validate_record(record)

        def mutate(zone_file: ZoneFile) -> bool:
            zone_file.add_record(record)
            return True

        self._modify(zone_name, mutate, record.type)
        self.logger.info(f"Added record {record.name} {record.type} to zone {zone_name}")

    def update_zone_record(self, zone_name: str, record: Record) -> None:
        """Replace the first record with the same (name, type)."""
        validate_record(record)

        def mutate(zone_file: ZoneFile) -> bool:
            if not zone_file.update_record(record):
                raise RecordNotFoundError(
                    f"record {record.name} {record.type} not found in zone {zone_name}"
                )
            return True

        self._modify(zone_name, mutate, record.type)
        self.logger.info(f"Updated record {record.name} {record.type} in zone {zone_name}")

    def remove_zone_record(self, zone_name: str, record_name: str, record_type: str) -> int:
        """Remove every record with (name, type); removing nothing is not an error."""
        removed = 0

        def mutate(zone_file: ZoneFile) -> bool:
            nonlocal removed
            removed = zone_file.remove_record(record_name, record_type)
            return removed > 0

        self._modify(zone_name, mutate, record_type)
        self.logger.info(
            f"Removed {removed} record(s) {record_name} {record_type} from zone {zone_name}"
        )
        return removed

    def get_zone_record(self, zone_name: str, record_name: str, record_type: str) -> Record:
        record = self.get_zone_file(zone_name).get_record(record_name, record_type)
        if record is None:
            raise RecordNotFoundError(
                f"record {record_name} {record_type} not found in zone {zone_name}"
            )
        return record
