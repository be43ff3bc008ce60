"""Shared schema configuration for record store payloads."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordSchema(BaseModel):
    """
    Base for models that mirror record store records.

    Records use camelCase field names; Python code uses snake_case. Unknown
    fields are kept so custom collection columns survive a round trip.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_record(self, exclude_unset: bool = False) -> dict:
        """Dump to a record store payload (camelCase, no None values)."""
        return self.model_dump(
            by_alias=True,
            exclude_unset=exclude_unset,
            exclude_none=True,
            mode="json",
        )


class PageResponse(BaseModel):
    """Paginated record listing."""

    items: list[dict]
    page: int
    per_page: int
    total_items: int
    total_pages: int

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
