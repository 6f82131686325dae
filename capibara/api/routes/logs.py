"""
Backup log retrieval
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from capibara.api.auth import get_auth_context
from capibara.api.schemas import BackupLogEntryResponse, BackupLogListResponse
from capibara.core.backup_logs import read_entries
from capibara.core.config import get_settings

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("", response_model=BackupLogListResponse, dependencies=[Depends(get_auth_context)])
def list_backup_logs(
    since: Optional[datetime] = Query(
        None,
        description="Only entries strictly newer than this ISO-8601 instant (naive values are UTC)",
    ),
):
    """Entries written by the backup process, oldest first."""
    entries = read_entries(get_settings().backup_log_file, since=since)
    return BackupLogListResponse(
        count=len(entries),
        since=since,
        entries=[BackupLogEntryResponse(**entry.to_dict()) for entry in entries],
    )
