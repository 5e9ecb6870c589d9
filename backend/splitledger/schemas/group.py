"""
Pydantic schemas for Group entity.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class GroupCreate(BaseModel):
    """Schema for group creation; the creator joins automatically."""
    name: str
    description: Optional[str] = None
    member_ids: List[int] = []


class GroupMemberAdd(BaseModel):
    user_id: int


class GroupMemberResponse(BaseModel):
    user_id: int
    name: str
    joined_at: datetime


class GroupResponse(BaseModel):
    """Schema for group response."""
    id: int
    name: str
    description: Optional[str] = None
    created_by: int
    members: List[GroupMemberResponse] = []
    created_at: datetime
