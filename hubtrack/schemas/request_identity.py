from __future__ import annotations

from pydantic import BaseModel


class RequestIdentity(BaseModel):
    email: str
    auth_source: str = "default"
