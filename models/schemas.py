"""
Pydantic schemas for route entries and the JSON bodies the controller emits.
Keeps the registration contract and error payloads explicit.
"""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.validators import validate_methods


class RouteEntry(BaseModel):
    """One row of the routing table: path pattern, allowed methods, handler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = Field(..., min_length=1)
    methods: tuple[str, ...]
    handler: Callable[..., Any]
    name: str | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError("Route path must start with '/'")
        return v

    @field_validator("methods", mode="before")
    @classmethod
    def normalize_methods(cls, v: Any) -> tuple[str, ...]:
        return validate_methods(v)


class ErrorDetail(BaseModel):
    """Body of responses the auth middleware rejects."""

    detail: str

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    """Minimal health payload for probes."""

    status: str = "ok"
    service: str = "apicontroller"
