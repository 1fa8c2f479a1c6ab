"""Pydantic v2 model for an environment variable record."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Env(BaseModel):
    """An environment variable as stored by the panel."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    value: str
    remarks: str | None = None
    status: int | None = None
    timestamp: str | None = None
    created_at: int | str | None = Field(default=None, alias="createdAt")
    updated_at: int | str | None = Field(default=None, alias="updatedAt")
