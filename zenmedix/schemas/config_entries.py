"""Schemas for the ``config`` key/value collection."""

from typing import Any

from pydantic import BaseModel


class ConfigValue(BaseModel):
    """Value stored under a config key."""

    key: str
    value: Any = None


class ConfigUpdate(BaseModel):
    """New value for a config key."""

    value: Any
