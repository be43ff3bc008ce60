"""Dashboard settings endpoints backed by the ``config`` collection."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from zenmedix.core.exceptions import NotFoundException, RecordStoreError
from zenmedix.dependencies import get_config_service, require_menu
from zenmedix.schemas.config_entries import ConfigUpdate, ConfigValue
from zenmedix.services.config_service import ConfigService

router = APIRouter(dependencies=[Depends(require_menu("settings"))])

ConfigServiceDep = Annotated[ConfigService, Depends(get_config_service)]


@router.get(
    "/",
    status_code=status.HTTP_200_OK,
    summary="All settings",
)
async def get_all_config(service: ConfigServiceDep) -> dict[str, Any]:
    """Every setting keyed by name."""
    return await service.get_all()


@router.get(
    "/{key}",
    response_model=ConfigValue,
    status_code=status.HTTP_200_OK,
    summary="Get setting",
)
async def get_config(key: str, service: ConfigServiceDep) -> ConfigValue:
    """Value stored under a key."""
    value = await service.get(key)
    if value is None:
        raise NotFoundException(f"Setting '{key}' not found")
    return ConfigValue(key=key, value=value)


@router.put(
    "/{key}",
    response_model=ConfigValue,
    status_code=status.HTTP_200_OK,
    summary="Store setting",
)
async def set_config(key: str, data: ConfigUpdate, service: ConfigServiceDep) -> ConfigValue:
    """Create or replace the value stored under a key."""
    if not await service.set(key, data.value):
        raise RecordStoreError(f"Could not save setting '{key}'")
    return ConfigValue(key=key, value=data.value)
