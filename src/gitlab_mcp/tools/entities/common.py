"""Shared input model pieces for entity tools."""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActionInput(BaseModel):
    """Base for every action model: unknown fields are rejected and numeric
    IDs are accepted wherever a string ID is expected."""

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)


class Paginated(ActionInput):
    per_page: Optional[int] = Field(None, ge=1, le=100, description="Number of items per page (max 100)")
    page: Optional[int] = Field(None, ge=1, description="Page number")


Namespace = Annotated[str, Field(min_length=1, description="Namespace path (group or project)")]
ProjectId = Annotated[str, Field(min_length=1, description="Project ID or URL-encoded path")]
