"""ServiceResult and ServiceError — the contract between services and the CLI.

INVARIANT: Every service operation returns a ServiceResult; expected
failures are reported through ``error`` rather than raised.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ExtensionFailure(BaseModel):
    """An extension whose code references did not all resolve.

    Attributes:
        uid: Extension uid, ``name[index]_buildHash``.
        causes: One ``"ExceptionType: message"`` line per failed reference.
    """

    model_config = {"frozen": True}

    uid: str
    causes: list[str] = Field(default_factory=list)


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    failures: list[ExtensionFailure] = Field(default_factory=list)


class ServiceResult(BaseModel):
    """Return type of service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (``"list"``, ``"resolve"``).
        data: Operation-specific payload.
        warnings: Non-fatal issues, e.g. plugins that failed to load.
        error: Structured error if ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
