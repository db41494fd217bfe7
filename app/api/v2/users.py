"""User management API (admin only)."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, or_
from typing import Optional
import logging

from app.api.deps import DbSession, CurrentUser, get_password_hash, require_permission
from app.exceptions import NotFoundError, ConflictError, BusinessRuleError
from app.models.inspection import Inspection
from app.models.user import User
from app.schemas.auth import UserCreate, UserUpdate, UserResponse
from app.security.rbac import Permission
from app.utils.pagination import paginate

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_permission(Permission.MANAGE_USERS))])


async def _get_user(db, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    return user


async def _ensure_email_free(db, email: str, exclude_id: Optional[int] = None) -> None:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none() is not None:
        raise ConflictError("Email already registered")


@router.get("")
async def list_users(
    db: DbSession,
    role: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """List users with optional role filter and name/email search."""
    query = select(User)
    if role:
        query = query.where(User.role == role)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    query = query.order_by(User.name)

    users, total = await paginate(db, query, page, per_page)
    return {
        "items": [UserResponse.model_validate(u) for u in users],
        "total": total,
        "page": page,
        "per_page": per_page,
    }


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: DbSession):
    return await _get_user(db, user_id)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user_data: UserCreate, db: DbSession):
    await _ensure_email_free(db, user_data.email)

    user = User(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=user_data.is_active,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} created with role {user.role}")
    return user


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, user_data: UserUpdate, db: DbSession):
    user = await _get_user(db, user_id)
    update_data = user_data.model_dump(exclude_unset=True)

    if "email" in update_data and update_data["email"] != user.email:
        await _ensure_email_free(db, update_data["email"], exclude_id=user.id)

    password = update_data.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: int, db: DbSession, current_user: CurrentUser):
    if user_id == current_user.id:
        raise BusinessRuleError("You cannot delete your own account")

    user = await _get_user(db, user_id)
    has_inspections = await db.execute(select(Inspection.id).where(Inspection.user_id == user_id).limit(1))
    if has_inspections.scalar_one_or_none() is not None:
        raise ConflictError("User has recorded inspections; deactivate the account instead")

    await db.delete(user)
    await db.commit()
    logger.info(f"User {user_id} deleted by {current_user.id}")


@router.patch("/{user_id}/toggle-status", response_model=UserResponse)
async def toggle_user_status(user_id: int, db: DbSession, current_user: CurrentUser):
    if user_id == current_user.id:
        raise BusinessRuleError("You cannot deactivate your own account")

    user = await _get_user(db, user_id)
    user.is_active = not user.is_active
    await db.commit()
    await db.refresh(user)
    return user
