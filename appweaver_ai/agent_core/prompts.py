"""System prompt construction.

The prompt embeds a plain-text projection of the App's current schema so the
model can reference real Type and Field ids in its tool calls. The projection
is rebuilt from the store at the start of every chat request and never
cached, so it always reflects mutations made earlier in the same session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from ..core.database.repositories import PlatformStore
from ..core.models.domain import EntityField, EntityType, FieldType

BLANK_SLATE = "This app currently has no types defined. It is a blank slate."


@dataclass(frozen=True)
class SchemaSnapshot:
    """Types of one App (ordered by position) with their Fields keyed by type id."""

    types: List[EntityType]
    fields_by_type: Dict[str, List[EntityField]] = field(default_factory=dict)


async def load_schema_snapshot(store: PlatformStore, app_id: str) -> SchemaSnapshot:
    types = await store.types.list(app_id)
    fields_by_type = {t.id: await store.fields.list(t.id) for t in types}
    return SchemaSnapshot(types=types, fields_by_type=fields_by_type)


def _describe_field(f: EntityField, type_names: Dict[str, str]) -> str:
    line = f'  - "{f.name}" (id: {f.id}, type: {f.type.value}'
    if f.required:
        line += ", required"
    if f.type == FieldType.relation:
        related = type_names.get(str(f.config.get("relatedTypeId")))
        if related is not None:
            line += f', relates to "{related}"'
    if f.type in (FieldType.select, FieldType.multi_select):
        options = f.config.get("options") or []
        if options:
            line += ", options: [" + ", ".join(str(o) for o in options) + "]"
    return line + ")"


def describe_schema(snapshot: SchemaSnapshot) -> str:
    """
    Render the schema as text for the system prompt.

    Pure and deterministic: the same snapshot always yields the same text.

    Args:
        snapshot: The App's Types and Fields.

    Returns:
        The blank-slate sentence when there are no Types, otherwise one block
        per Type listing its Fields in position order.
    """
    if not snapshot.types:
        return BLANK_SLATE

    type_names = {t.id: t.name for t in snapshot.types}
    lines = ["Current app schema:"]
    for t in snapshot.types:
        header = f'Type: "{t.name}" (id: {t.id})'
        if t.description:
            header += f" - {t.description}"
        lines.append("")
        lines.append(header)
        fields = snapshot.fields_by_type.get(t.id, [])
        if not fields:
            lines.append("  Fields: none")
        for f in fields:
            lines.append(_describe_field(f, type_names))
    return "\n".join(lines)


def build_system_prompt(snapshot: SchemaSnapshot) -> str:
    """Full system prompt for the chat assistant."""
    return f"""You are an AI assistant that helps users design data models and set up automations for their applications. You work within an app-building platform.

{describe_schema(snapshot)}

Your capabilities:
- Create, update, and delete types (data models like Contact, Company, Deal)
- Create, update, and delete fields on types (text, rich_text, number, boolean, date, select, multi_select, url, email, relation)
- Create records (rows of data) in types
- List records in a type
- Create automations: Python scripts that run automatically when records are created, updated, or deleted
- List existing automations

Automation guidelines:
- Automations are Python scripts that run in an isolated sandbox.
- When the user asks to "automate", "trigger", or "when X happens do Y", use create_automation.
- The code must reference field IDs (from the schema above), NOT field names.
- Available in the sandbox: ctx dict (event data), field_map (ID to name mapping in both directions), pd (pandas, when installed), and helpers: create_record(type_id, data), update_record(type_id, record_id, data), delete_record(type_id, record_id), log(msg), warn(msg), error(msg).
- ctx["record"] is a dict of {{field_id: value}} for the triggering record.
- ctx["previous_record"] is only set for record_updated triggers.
- Always log key actions with log() so users can debug from run history.

General guidelines:
- When the user asks you to create a data model (e.g. "build me a CRM"), create types and their fields systematically.
- For relation fields, first create both types, then add the relation field using the target type's id from the tool result.
- Use fitting field types: email for emails, url for links, select for statuses and categories, boolean for yes/no flags, date for dates, number for quantities and amounts.
- Give types and fields clear, descriptive names and mark essential fields as required.
- For select fields, provide sensible default options.
- After making changes, briefly summarize what you created.
- Be conversational but efficient. Use the tools to accomplish the user's request."""
