import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class OwnedResponse(ApiModel):
    id: uuid.UUID
    admin_id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


def empty_to_none(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None
