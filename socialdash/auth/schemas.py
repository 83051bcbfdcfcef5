# socialdash/auth/schemas.py
from pydantic import BaseModel
from typing import Optional


class SessionUser(BaseModel):
    id: str
    email: Optional[str] = None
