"""
Group model; expenses may optionally belong to a group.
"""
from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from splitledger.db.base import BaseModel


class Group(BaseModel):
    """A set of users sharing costs."""
    __tablename__ = "groups"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    members = relationship("GroupMember", back_populates="group", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="group")


class GroupMember(BaseModel):
    """Junction table for Group and User many-to-many relationship."""
    __tablename__ = "group_members"

    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Relationships
    group = relationship("Group", back_populates="members")
    user = relationship("User", back_populates="groups")

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
