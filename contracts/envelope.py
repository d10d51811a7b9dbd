"""Result envelope contracts.

Every bound tool invocation returns exactly one of ``ToolSuccess`` or
``ToolFailure``.  The error vocabulary is closed: tools that need finer
distinctions put them in ``ToolError.reason`` and pick the nearest
``ErrorKind`` for ``code``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel


PLAN_UPGRADE_MESSAGE = "This feature isn't available on your plan."
INTERNAL_ERROR_MESSAGE = "Something went wrong while running this tool. Please try again later."


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def retryable(self) -> bool:
        """Whether the model should be encouraged to try again this turn."""
        return self in (ErrorKind.VALIDATION_ERROR, ErrorKind.NOT_FOUND)


class ToolError(BaseModel):
    code: ErrorKind
    message: str
    details: list[dict[str, Any]] = []   # field-level issues for VALIDATION_ERROR
    reason: str | None = None            # tool-specific sub-code, e.g. CLIENT_NOT_FOUND


class ToolSuccess(BaseModel):
    success: Literal[True] = True
    data: Any = None


class ToolFailure(BaseModel):
    success: Literal[False] = False
    error: ToolError

    @property
    def code(self) -> ErrorKind:
        return self.error.code


ToolResult = Union[ToolSuccess, ToolFailure]


def tool_success(data: Any = None) -> ToolSuccess:
    return ToolSuccess(data=data)


def tool_error(
    message: str,
    code: ErrorKind = ErrorKind.NOT_FOUND,
    *,
    reason: str | None = None,
    details: list[dict[str, Any]] | None = None,
) -> ToolFailure:
    """Build a domain-signalled failure.

    Defaults to ``NOT_FOUND`` since that is what most tools report when a
    referenced entity is missing.
    """
    return ToolFailure(
        error=ToolError(code=code, message=message, reason=reason, details=details or []),
    )


def is_tool_result(value: Any) -> bool:
    return isinstance(value, (ToolSuccess, ToolFailure))
