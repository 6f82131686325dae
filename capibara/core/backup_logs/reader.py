"""
Backup log reader.

The backup process writes one entry per line, either as a JSON object:

    {"timestamp": "2025-03-01T02:00:00Z", "level": "INFO", "message": "Backup started", "job": "nightly"}

or as plain text:

    2025-03-01T02:00:00Z [INFO] Backup started

Reads are sequential and lock-free; the file is never written from here.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_TIMESTAMP_KEYS = ("timestamp", "time", "ts")
_MESSAGE_KEYS = ("message", "msg")

# <timestamp> [LEVEL] message   (brackets optional)
_TEXT_LINE = re.compile(r"^(?P<ts>\S+)\s+\[?(?P<level>[A-Za-z]+)\]?\s*(?P<message>.*)$")


@dataclass
class BackupLogEntry:
    """A single entry emitted by the backup process."""
    timestamp: datetime
    level: str
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
            "fields": self.fields,
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return as_utc(parsed)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_json_line(line: str) -> Optional[BackupLogEntry]:
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    ts_key = next((k for k in _TIMESTAMP_KEYS if k in data), None)
    timestamp = parse_timestamp(data.get(ts_key)) if ts_key else None
    if timestamp is None:
        return None

    msg_key = next((k for k in _MESSAGE_KEYS if k in data), None)
    extras = {k: v for k, v in data.items() if k not in (ts_key, msg_key, "level")}
    return BackupLogEntry(
        timestamp=timestamp,
        level=str(data.get("level", "INFO")).upper(),
        message=str(data.get(msg_key, "")) if msg_key else "",
        fields=extras,
    )


def parse_log_line(line: str) -> Optional[BackupLogEntry]:
    """
    Parse a raw line into a BackupLogEntry.

    Returns None for blank lines and lines in neither supported format.
    """
    line = line.strip()
    if not line:
        return None

    if line.startswith("{"):
        return _parse_json_line(line)

    match = _TEXT_LINE.match(line)
    if not match:
        return None
    timestamp = parse_timestamp(match.group("ts"))
    if timestamp is None:
        return None
    return BackupLogEntry(
        timestamp=timestamp,
        level=match.group("level").upper(),
        message=match.group("message").strip(),
    )


def read_entries(path: Path, since: Optional[datetime] = None) -> List[BackupLogEntry]:
    """
    Read all entries from the backup log, in file order.

    Args:
        path: Backup log file
        since: If given, keep only entries strictly newer than this instant

    Returns:
        Parsed entries (empty if the file does not exist)
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"Backup log {path} not found")
        return []

    threshold = as_utc(since) if since else None
    entries: List[BackupLogEntry] = []
    skipped = 0

    with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
        for raw in f:
            entry = parse_log_line(raw)
            if entry is None:
                if raw.strip():
                    skipped += 1
                continue
            if threshold is not None and entry.timestamp <= threshold:
                continue
            entries.append(entry)

    if skipped:
        logger.debug(f"Skipped {skipped} unparseable lines in {path}")
    return entries
