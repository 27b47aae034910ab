from __future__ import annotations

"""Tool handler protocol and execution data models.

A tool is the unit of work the language model can request. Each tool is a
descriptor with two halves:

- ``validate`` turns raw, untrusted JSON arguments into a typed argument
  model (or raises ``ToolValidationError``);
- ``execute`` performs exactly one store read or mutation inside the tenancy
  context carried by ``ToolContext``.

Handlers never decide tenancy themselves beyond scoping every lookup by
``ctx.app_id``: a Type that exists in another App is reported as
``Type not found``, exactly like a missing one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ...core.database.repositories import PlatformStore
from ...core.errors import NotFoundError, ToolValidationError
from ...core.models.domain import EntityType
from ...events import RecordEventPublisher

InputType = TypeVar("InputType", bound=BaseModel)


@dataclass(frozen=True)
class ToolDeps:
    """Collaborators shared by every tool invocation.

    Attributes
    ----------
    store:
        Repository bundle used for all reads and mutations.
    publish:
        Narrow publish capability of the event bus. Tools may emit record
        events but never subscribe.
    """

    store: PlatformStore
    publish: RecordEventPublisher


@dataclass(frozen=True)
class ToolContext:
    """Per-invocation tenancy context.

    Attributes
    ----------
    app_id:
        The App the conversation is bound to. Every lookup is scoped by it.
    user_id:
        The caller, recorded as ``created_by`` on new Records and Automations.
    deps:
        Shared ``ToolDeps``.
    """

    app_id: str
    user_id: str
    deps: ToolDeps


@dataclass(frozen=True)
class ToolResult:
    """Structured tool execution outcome; exactly one of ``result``/``error`` is meaningful."""

    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: Any) -> "ToolResult":
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe dict, omitting the unused half."""
        if self.success:
            return {"success": True, "result": self.result}
        return {"success": False, "error": self.error}


class ToolSpec(BaseModel):
    """Catalog entry sent to the language model."""

    name: str
    description: str
    input_schema: Dict[str, Any]


def format_validation_error(tool_name: str, exc: ValidationError) -> str:
    """Render a pydantic ``ValidationError`` as one line naming the offending arguments."""
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "input"
        problems.append(f"{location}: {err.get('msg', 'invalid value')}")
    return f"Invalid input for {tool_name}: " + "; ".join(problems)


class ToolHandler(ABC, Generic[InputType]):
    """Abstract base class for tool handlers.

    Subclasses declare ``name``, ``description`` and ``input_model`` as class
    attributes and implement ``execute``.
    """

    name: str
    description: str
    input_model: Type[InputType]

    def validate(self, raw: Any) -> InputType:
        """
        Validate raw arguments from the model.

        Args:
            raw: The decoded JSON arguments (normally a dict).

        Returns:
            The typed argument model.

        Raises:
            ToolValidationError: If arguments are missing or malformed.
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ToolValidationError(f"Invalid input for {self.name}: expected an object", tool_name=self.name)
        try:
            return self.input_model.model_validate(raw)
        except ValidationError as exc:
            raise ToolValidationError(format_validation_error(self.name, exc), tool_name=self.name) from exc

    @abstractmethod
    async def execute(self, args: InputType, ctx: ToolContext) -> Any:
        """
        Perform the tool's single read or mutation.

        Args:
            args: Validated arguments.
            ctx: Tenancy context and dependencies.

        Returns:
            A JSON-serializable result.
        """

    def to_spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            input_schema=self.input_model.model_json_schema(),
        )


async def require_type(ctx: ToolContext, type_id: str) -> EntityType:
    """Resolve ``type_id`` inside ``ctx.app_id`` or raise ``NotFoundError("Type not found")``."""
    entity_type = await ctx.deps.store.types.get(type_id, app_id=ctx.app_id)
    if entity_type is None:
        raise NotFoundError("Type not found")
    return entity_type
