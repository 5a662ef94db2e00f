"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class AssignRequest(BaseModel):
    """Optional per-click overrides of the configured extension settings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    repository: str | None = None
    base_branch: str | None = Field(default=None, alias="baseBranch")
    custom_instructions: str | None = Field(default=None, alias="customInstructions")


class HealthResponse(BaseModel):
    status: str
    version: str
    repository: str
