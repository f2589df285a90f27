from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class MemberBrief(BaseModel):
    id: int
    student_id: str
    first_name: str
    last_name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True


class MemberOut(MemberBrief):
    organization_id: int
    is_officer: bool
    organization_member: bool
    can_scan: bool
    is_active: bool
    deactivated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberRemovalResult(BaseModel):
    id: int
    deleted: bool
    deactivated: bool
    message: str


class WhoAmIResponse(BaseModel):
    id: int
    student_id: str
    full_name: str
    email: str
    organization_id: int
    is_officer: bool
    can_scan: bool
