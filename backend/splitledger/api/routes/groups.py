"""
Group routes: just enough for expenses to be scoped to a group.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload
from splitledger.db.session import get_db
from splitledger.models.user import User
from splitledger.models.group import Group, GroupMember
from splitledger.schemas.group import GroupCreate, GroupMemberAdd, GroupMemberResponse, GroupResponse
from splitledger.api.dependencies import get_current_user

router = APIRouter(prefix="/groups", tags=["groups"])


def check_group_access(group_id: int, user_id: int, db: Session) -> Group:
    """Check if user is a member of the group."""
    group = db.query(Group).filter(Group.id == group_id, Group.is_active.is_(True)).first()
    if not group:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )

    member = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    ).first()
    if not member:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied to this group"
        )

    return group


def _group_response(group_id: int, db: Session) -> GroupResponse:
    group = db.query(Group).options(
        joinedload(Group.members).joinedload(GroupMember.user)
    ).filter(Group.id == group_id).first()
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        created_by=group.created_by,
        members=[
            GroupMemberResponse(user_id=m.user_id, name=m.user.name, joined_at=m.created_at)
            for m in sorted(group.members, key=lambda m: m.user_id)
        ],
        created_at=group.created_at,
    )


@router.post("", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    group_data: GroupCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a group; the creator is always a member."""
    member_ids = {current_user.id, *group_data.member_ids}
    found = {uid for (uid,) in db.query(User.id).filter(User.id.in_(sorted(member_ids))).all()}
    missing = sorted(member_ids - found)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown users: {missing}"
        )

    group = Group(name=group_data.name, description=group_data.description, created_by=current_user.id)
    db.add(group)
    db.flush()
    for user_id in sorted(member_ids):
        db.add(GroupMember(group_id=group.id, user_id=user_id))
    db.commit()

    return _group_response(group.id, db)


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get group with its members."""
    check_group_access(group_id, current_user.id, db)
    return _group_response(group_id, db)


@router.post("/{group_id}/members", response_model=GroupResponse)
async def add_group_member(
    group_id: int,
    member: GroupMemberAdd,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add a user to a group the caller belongs to."""
    check_group_access(group_id, current_user.id, db)

    if not db.query(User).filter(User.id == member.user_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    existing = db.query(GroupMember).filter(
        GroupMember.group_id == group_id,
        GroupMember.user_id == member.user_id
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User is already a member of this group"
        )

    db.add(GroupMember(group_id=group_id, user_id=member.user_id))
    db.commit()

    return _group_response(group_id, db)
