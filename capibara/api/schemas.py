"""
Pydantic schemas for FastAPI endpoints
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    """Credentials exchanged for a session token"""
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Issued session token"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")


class KeyRegistrationResponse(BaseModel):
    """Outcome of POST /ssh/keys"""
    status: str
    message: str
    reason: Optional[str] = None


class BackupLogEntryResponse(BaseModel):
    """Single backup log entry"""
    timestamp: datetime
    level: str
    message: str
    fields: Dict[str, Any] = Field(default_factory=dict)


class BackupLogListResponse(BaseModel):
    """Backup log entries newer than the requested threshold"""
    count: int
    since: Optional[datetime] = None
    entries: List[BackupLogEntryResponse]
