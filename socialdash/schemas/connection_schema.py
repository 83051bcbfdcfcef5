# socialdash/schemas/connection_schema.py
from pydantic import BaseModel
from typing import Optional, Union
from datetime import datetime


class ConnectionRead(BaseModel):
    platform_id: str
    status: str
    handle: Optional[str] = None
    has_token: bool = False
    token_expires_at: Optional[datetime] = None
    scope: Optional[str] = None
    last_synced: Optional[datetime] = None
    name: str
    color: str
    description: str
    icon_name: str


class SocialStats(BaseModel):
    platform: str
    connected: bool
    followers: Optional[Union[int, str]] = None
    reach: Optional[Union[int, str]] = None
    impressions: Optional[Union[int, str]] = None
    engagement_rate: Optional[str] = None
    posts: Optional[Union[int, str]] = None
    error: Optional[str] = None
