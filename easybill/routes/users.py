"""Self-service profile endpoints and tenant user administration."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from easybill.business.statuses import Role
from easybill.schemas.auth import (
    ChangePasswordRequest,
    UpdateProfileRequest,
    UserResponse,
    UserStatusRequest,
)
from easybill.schemas.common import MessageResponse, Page
from easybill.security.auth import AuthenticatedUser, get_current_user, require_admin
from easybill.services.users import UserService
from easybill.storage.db import get_db_session


router = APIRouter()


# ==== CURRENT USER ==== #


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await UserService(db, user.tenant_id).get(user.user_id))


@router.put("/me", response_model=UserResponse)
async def update_me(
    payload: UpdateProfileRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    updated = await UserService(db, user.tenant_id).update_profile(user.user_id, payload)
    return UserResponse.model_validate(updated)


@router.post("/me/password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await UserService(db, user.tenant_id).change_password(user.user_id, payload)
    return MessageResponse(message="Password changed successfully")


# ==== ADMINISTRATION ==== #


@router.get("", response_model=Page[UserResponse])
async def list_users(
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Page[UserResponse]:
    rows, total = await UserService(db, admin.tenant_id).list_users(page, size)
    return Page[UserResponse](
        items=[UserResponse.model_validate(u) for u in rows], total=total, page=page, size=size
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await UserService(db, admin.tenant_id).get(user_id))


@router.put("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: str,
    payload: UserStatusRequest,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    updated = await UserService(db, admin.tenant_id).update_status(user_id, payload.status)
    return UserResponse.model_validate(updated)


@router.post("/{user_id}/roles/{role}", response_model=UserResponse)
async def add_role(
    user_id: str,
    role: Role,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await UserService(db, admin.tenant_id).add_role(user_id, role))


@router.delete("/{user_id}/roles/{role}", response_model=UserResponse)
async def remove_role(
    user_id: str,
    role: Role,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await UserService(db, admin.tenant_id).remove_role(user_id, role))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    admin: AuthenticatedUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await UserService(db, admin.tenant_id).delete(user_id, admin.user_id)
    return Response(status_code=204)
