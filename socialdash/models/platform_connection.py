# socialdash/models/platform_connection.py
from enum import Enum
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import DateTime, String, Text, UniqueConstraint


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    PENDING = "pending"


class PlatformConnection(SQLModel, table=True):
    __tablename__ = "connections_platforms"
    __table_args__ = (UniqueConstraint("user_id", "platform_id", name="uq_connections_user_platform"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(sa_column=Column(String, index=True, nullable=False))
    platform_id: str = Field(sa_column=Column(String, nullable=False))
    status: str = Field(default=ConnectionStatus.DISCONNECTED.value)
    handle: Optional[str] = None
    # token columns hold Fernet ciphertext, see socialdash.auth.utils.encrypt_token
    access_token: Optional[str] = Field(default=None, sa_column=Column(Text))
    refresh_token: Optional[str] = Field(default=None, sa_column=Column(Text))
    token_expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    scope: Optional[str] = None
    last_synced: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    name: str
    color: str
    description: str
    icon_name: str
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
