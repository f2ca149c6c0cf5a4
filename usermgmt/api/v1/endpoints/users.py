# usermgmt/api/v1/endpoints/users.py
from typing import List

from fastapi import APIRouter, Depends, Response, status

from usermgmt.core.deps import (
    ensure_self,
    ensure_self_or_admin,
    get_current_user,
    get_user_service,
    require_admin,
)
from usermgmt.models.users import User
from usermgmt.schemas.user import UserCreate, UserRead, UserUpdate
from usermgmt.services.users import UserService

router = APIRouter(tags=["users"])


# === 註冊（開放） ===
@router.post(
    "/",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email already exists"}},
)
async def create_user(
    payload: UserCreate,
    service: UserService = Depends(get_user_service),
):
    return await service.create(payload.email, payload.password, payload.name)


# === 使用者列表（管理員限定） ===
@router.get("/", response_model=List[UserRead])
async def list_users(
    service: UserService = Depends(get_user_service),
    _: User = Depends(require_admin),
):
    return await service.find_all()


# === 目前登入者 ===
@router.get("/me", response_model=UserRead)
async def users_me(current_user: User = Depends(get_current_user)):
    return current_user


# === 單一使用者（本人或管理員） ===
@router.get("/{user_id}", response_model=UserRead, responses={404: {"description": "User not found"}})
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, user_id)
    return await service.find_one(user_id)


# === 更新（僅限本人） ===
@router.put("/{user_id}", response_model=UserRead, responses={403: {"description": "Permission denied"}})
async def update_user(
    user_id: str,
    payload: UserUpdate,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    ensure_self(current_user, user_id)
    return await service.update(user_id, payload.model_dump(exclude_unset=True))


# === 刪除（僅限本人） ===
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
    current_user: User = Depends(get_current_user),
):
    ensure_self(current_user, user_id)
    await service.remove(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
