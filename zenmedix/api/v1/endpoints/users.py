"""User management endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from zenmedix.dependencies import get_user_service, require_menu
from zenmedix.schemas.users import UserCreate, UserResponse, UserUpdate
from zenmedix.services.user_service import UserService, get_roles

router = APIRouter(dependencies=[Depends(require_menu("settings"))])

UserServiceDep = Annotated[UserService, Depends(get_user_service)]


@router.get(
    "/roles",
    status_code=status.HTTP_200_OK,
    summary="Role constants",
)
async def list_roles() -> dict[str, str]:
    """Role names and their stored values."""
    return get_roles()


@router.get(
    "/",
    response_model=list[UserResponse],
    status_code=status.HTTP_200_OK,
    summary="List users",
)
async def list_users(service: UserServiceDep) -> list[UserResponse]:
    """List users sorted by name."""
    return await service.list_users()


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
)
async def create_user(data: UserCreate, service: UserServiceDep) -> dict[str, Any]:
    """Create a dashboard user."""
    return await service.create(data)


@router.patch(
    "/{user_id}",
    status_code=status.HTTP_200_OK,
    summary="Update user",
)
async def update_user(user_id: str, data: UserUpdate, service: UserServiceDep) -> dict[str, Any]:
    """Update a dashboard user."""
    return await service.update(user_id, data)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete user",
)
async def delete_user(user_id: str, service: UserServiceDep) -> None:
    """Delete a dashboard user."""
    await service.delete(user_id)
