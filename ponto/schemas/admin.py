from __future__ import annotations

from pydantic import BaseModel


class AdminStats(BaseModel):
    total_users: int
    total_punches: int
    pending_justifications: int
