"""Tool SDK contracts.

Every coachgate tool subclasses BaseTool.  The binder validates raw
arguments against ``Params``, checks the caller's role against
``minimum_role``, runs ``execute`` and normalises the outcome into a
result envelope.
"""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from contracts.store import DataStore


# ── Roles ────────────────────────────────────────────────────────────


class UserRole(str, Enum):
    """Subscription tiers, totally ordered free < premium < coach."""

    FREE = "free"
    PREMIUM = "premium"
    COACH = "coach"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK: dict[UserRole, int] = {
    UserRole.FREE: 0,
    UserRole.PREMIUM: 1,
    UserRole.COACH: 2,
}


# ── Context passed to every tool invocation ──────────────────────────


@dataclass(frozen=True)
class ToolContext:
    """Per-turn capsule of identity, role and persistence access."""

    store: DataStore
    user_id: str
    role: UserRole
    turn_id: str = field(default_factory=lambda: uuid.uuid4().hex)


# ── Parameters & manifest ────────────────────────────────────────────


class ToolParams(BaseModel):
    """Base for tool parameter models.

    Unknown keys are dropped.  Fields use camelCase aliases so the schema
    published to the model matches what it sends back.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class NoParams(ToolParams):
    pass


class ManifestEntry(BaseModel):
    """What the model sees of a tool: name, description, argument schema."""

    name: str
    description: str
    input_schema: dict[str, Any] = Field(serialization_alias="schema")

    def to_function(self) -> dict[str, Any]:
        """OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


class ArgumentError(ValueError):
    """Raw arguments were rejected by a tool's parameter schema."""

    def __init__(self, issues: list[dict[str, Any]]) -> None:
        self.issues = issues
        super().__init__(format_issues(issues))


def format_issues(issues: list[dict[str, Any]]) -> str:
    parts = []
    for issue in issues:
        loc = ".".join(str(p) for p in issue.get("loc", [])) or "arguments"
        parts.append(f"{loc}: {issue['msg']}")
    return "Invalid arguments - " + "; ".join(parts)


# ── Abstract base class ─────────────────────────────────────────────


class BaseTool(ABC):
    """Abstract base class that every coachgate tool must implement.

    Subclasses are declared once at import time and hold no state; the same
    instance serves every user and every turn.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    Params: ClassVar[type[ToolParams]] = NoParams
    minimum_role: ClassVar[UserRole | None] = None

    def manifest_entry(self) -> ManifestEntry:
        """Derive the published schema from ``Params``."""
        return ManifestEntry(
            name=self.name,
            description=self.description,
            input_schema=self.Params.model_json_schema(),
        )

    def parse(self, raw: Any) -> ToolParams:
        """Validate raw model output into typed params.

        Accepts a mapping or a JSON-encoded object.  Raises ArgumentError
        with one issue per failing field.
        """
        if raw is None:
            raw = {}
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw or "{}")
            except json.JSONDecodeError as exc:
                raise ArgumentError(
                    [{"loc": [], "msg": f"Arguments are not valid JSON ({exc.msg})", "type": "json_invalid"}]
                ) from exc
        if not isinstance(raw, Mapping):
            raise ArgumentError(
                [{"loc": [], "msg": "Arguments must be a JSON object", "type": "model_type"}]
            )
        try:
            return self.Params.model_validate(dict(raw))
        except ValidationError as exc:
            raise ArgumentError(
                [
                    {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                    for err in exc.errors()
                ]
            ) from exc

    @abstractmethod
    async def execute(self, params: Any, ctx: ToolContext) -> Any:
        """Run the domain logic.  Called by the binder after the role check.

        May return plain data (wrapped as success), a ToolSuccess/ToolFailure,
        or raise.
        """
        ...
