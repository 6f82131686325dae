"""
Backup log access (read-only)
"""
from capibara.core.backup_logs.reader import BackupLogEntry, parse_log_line, read_entries

__all__ = ["BackupLogEntry", "parse_log_line", "read_entries"]
