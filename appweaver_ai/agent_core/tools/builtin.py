from __future__ import annotations

"""Built-in schema-building tools.

Every handler here performs at most one store mutation, scoped to the App in
``ToolContext``. Results are returned as camelCase JSON payloads so they can be
fed straight back to the model as tool results.

Position assignment (``create_type``/``create_field``) reads the sibling count
and inserts without locking; concurrent creations may end up sharing a
position, which is tolerated since position only drives display order.
"""

from typing import Any, Dict

from ...core.errors import NotFoundError
from ...core.logging_config import get_logger
from ...core.models.domain import (
    Automation,
    AutomationTrigger,
    EntityField,
    EntityType,
    FieldType,
    Record,
    RecordEvent,
    RecordEventType,
)
from ...core.models.record_validation import validate_record_data
from .base import ToolContext, ToolHandler, require_type
from .definitions import (
    CreateAutomationInput,
    CreateFieldInput,
    CreateRecordInput,
    CreateTypeInput,
    DeleteFieldInput,
    DeleteTypeInput,
    ListAutomationsInput,
    ListRecordsInput,
    UpdateFieldInput,
    UpdateTypeInput,
)

logger = get_logger(__name__)


class CreateTypeTool(ToolHandler[CreateTypeInput]):
    name = "create_type"
    description = (
        "Create a new type (data model) in the app. Types are like database tables, "
        "e.g. Contact, Company, Deal, Task."
    )
    input_model = CreateTypeInput

    async def execute(self, args: CreateTypeInput, ctx: ToolContext) -> Dict[str, Any]:
        store = ctx.deps.store
        position = await store.types.count(ctx.app_id)
        created = await store.types.create(
            EntityType(
                app_id=ctx.app_id,
                name=args.name,
                description=args.description,
                icon=args.icon,
                position=position,
            )
        )
        logger.info("Created type %s (%s) in app %s at position %d", created.name, created.id, ctx.app_id, position)
        return created.to_payload()


class UpdateTypeTool(ToolHandler[UpdateTypeInput]):
    name = "update_type"
    description = "Update an existing type (rename, change description or icon)."
    input_model = UpdateTypeInput

    async def execute(self, args: UpdateTypeInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        changes: Dict[str, Any] = {}
        if args.name:
            changes["name"] = args.name
        # description/icon may be cleared explicitly with null
        for key in ("description", "icon"):
            if key in args.model_fields_set:
                changes[key] = getattr(args, key)
        updated = await ctx.deps.store.types.update(args.type_id, app_id=ctx.app_id, changes=changes)
        if updated is None:
            raise NotFoundError("Type not found")
        return updated.to_payload()


class DeleteTypeTool(ToolHandler[DeleteTypeInput]):
    name = "delete_type"
    description = "Delete a type and all its fields and records. This is destructive, use with caution."
    input_model = DeleteTypeInput

    async def execute(self, args: DeleteTypeInput, ctx: ToolContext) -> Dict[str, Any]:
        entity_type = await require_type(ctx, args.type_id)
        await ctx.deps.store.types.delete(args.type_id, app_id=ctx.app_id)
        logger.info("Deleted type %s (%s) from app %s", entity_type.name, entity_type.id, ctx.app_id)
        return {"deleted": entity_type.name}


class CreateFieldTool(ToolHandler[CreateFieldInput]):
    name = "create_field"
    description = (
        "Add a new field to a type. Supported field types: text, rich_text, number, boolean, date, "
        'select, multi_select, url, email, relation. For "select" and "multi_select", provide options '
        'in config.options array. For "relation", provide config.relatedTypeId with the UUID of the related type.'
    )
    input_model = CreateFieldInput

    async def execute(self, args: CreateFieldInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        store = ctx.deps.store
        position = await store.fields.count(args.type_id)
        created = await store.fields.create(
            EntityField(
                type_id=args.type_id,
                name=args.name,
                type=FieldType(args.type),
                config=args.config,
                required=args.required,
                position=position,
            )
        )
        return created.to_payload()


class UpdateFieldTool(ToolHandler[UpdateFieldInput]):
    name = "update_field"
    description = "Update an existing field (rename, change config, toggle required)."
    input_model = UpdateFieldInput

    async def execute(self, args: UpdateFieldInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        store = ctx.deps.store
        if await store.fields.get(args.field_id, type_id=args.type_id) is None:
            raise NotFoundError("Field not found")
        changes: Dict[str, Any] = {}
        if args.name:
            changes["name"] = args.name
        if args.required is not None:
            changes["required"] = args.required
        if args.config is not None:
            changes["config"] = args.config
        updated = await store.fields.update(args.field_id, type_id=args.type_id, changes=changes)
        if updated is None:
            raise NotFoundError("Field not found")
        return updated.to_payload()


class DeleteFieldTool(ToolHandler[DeleteFieldInput]):
    name = "delete_field"
    description = "Delete a field from a type. This removes the field definition."
    input_model = DeleteFieldInput

    async def execute(self, args: DeleteFieldInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        store = ctx.deps.store
        field = await store.fields.get(args.field_id, type_id=args.type_id)
        if field is None:
            raise NotFoundError("Field not found")
        await store.fields.delete(args.field_id, type_id=args.type_id)
        return {"deleted": field.name}


class CreateRecordTool(ToolHandler[CreateRecordInput]):
    name = "create_record"
    description = "Create a new record (row) in a type. The data object maps field IDs to values."
    input_model = CreateRecordInput

    async def execute(self, args: CreateRecordInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        store = ctx.deps.store
        validate_record_data(await store.fields.list(args.type_id), args.data)
        record = await store.records.create(Record(type_id=args.type_id, data=args.data, created_by=ctx.user_id))
        # committed above; subscribers observe the persisted record
        ctx.deps.publish(
            RecordEvent(
                type=RecordEventType.record_created,
                app_id=ctx.app_id,
                type_id=args.type_id,
                record_id=record.id,
                record=record.data,
                user_id=ctx.user_id,
                triggered_by_automation=False,
            )
        )
        return record.to_payload()


class ListRecordsTool(ToolHandler[ListRecordsInput]):
    name = "list_records"
    description = "List records in a type. Returns paginated results."
    input_model = ListRecordsInput

    async def execute(self, args: ListRecordsInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        store = ctx.deps.store
        offset = (args.page - 1) * args.page_size
        records = await store.records.list(args.type_id, limit=args.page_size, offset=offset)
        total = await store.records.count(args.type_id)
        return {
            "records": [r.to_payload() for r in records],
            "total": total,
            "page": args.page,
            "pageSize": args.page_size,
        }


class CreateAutomationTool(ToolHandler[CreateAutomationInput]):
    name = "create_automation"
    description = """Create a data automation that runs Python code in a secure sandbox when records are created, updated, or deleted, or when manually triggered.

The Python code runs in an isolated environment with these globals:
- ctx: dict with event info
  - ctx["type"]: "record_created" | "record_updated" | "record_deleted" | "manual"
  - ctx["record"]: dict of triggering record data (field_id -> value)
  - ctx["record_id"]: UUID string of the triggering record
  - ctx["previous_record"]: dict of data before update (only for record_updated, else None)
- field_map: dict mapping field IDs <-> field names
- pd: pandas, pre-imported when available
- Helper functions:
  - create_record(type_id, data): queue a new record (data is {field_id: value})
  - update_record(type_id, record_id, data): queue a record update
  - delete_record(type_id, record_id): queue a record deletion
  - log(msg), warn(msg), error(msg): logging (visible in run history)

Write plain Python script body. Reference field IDs (UUIDs), not names."""
    input_model = CreateAutomationInput

    async def execute(self, args: CreateAutomationInput, ctx: ToolContext) -> Dict[str, Any]:
        await require_type(ctx, args.type_id)
        created = await ctx.deps.store.automations.create(
            Automation(
                app_id=ctx.app_id,
                type_id=args.type_id,
                name=args.name,
                description=args.description,
                trigger=AutomationTrigger(args.trigger),
                code=args.code,
                enabled=True,
                created_by=ctx.user_id,
            )
        )
        logger.info("Created automation %s (%s) on type %s", created.name, created.id, args.type_id)
        return created.to_payload()


class ListAutomationsTool(ToolHandler[ListAutomationsInput]):
    name = "list_automations"
    description = "List automations in the app, optionally filtered by type."
    input_model = ListAutomationsInput

    async def execute(self, args: ListAutomationsInput, ctx: ToolContext) -> Any:
        automations = await ctx.deps.store.automations.list(ctx.app_id, type_id=args.type_id)
        return [a.to_payload() for a in automations]


BUILTIN_TOOLS = (
    CreateTypeTool,
    UpdateTypeTool,
    DeleteTypeTool,
    CreateFieldTool,
    UpdateFieldTool,
    DeleteFieldTool,
    CreateRecordTool,
    ListRecordsTool,
    CreateAutomationTool,
    ListAutomationsTool,
)
