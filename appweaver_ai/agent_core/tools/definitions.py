"""Input schemas for the schema-building tools.

Each model doubles as the JSON schema advertised to the language model (via
``model_json_schema``) and as the validator for the arguments it sends back.
Unknown keys are ignored so a chatty model does not fail validation.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

FieldTypeName = Literal[
    "text",
    "rich_text",
    "number",
    "boolean",
    "date",
    "select",
    "multi_select",
    "url",
    "email",
    "relation",
]

AutomationTriggerName = Literal["record_created", "record_updated", "record_deleted", "manual"]


class ToolInput(BaseModel):
    """Base for tool argument models."""

    model_config = ConfigDict(extra="ignore")


class CreateTypeInput(ToolInput):
    name: str = Field(..., min_length=1, description='Name of the type, e.g. "Contact", "Company"')
    description: Optional[str] = Field(None, description="Optional description of what this type represents")
    icon: Optional[str] = Field(None, description='Optional emoji icon, e.g. "👤", "🏢"')


class UpdateTypeInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type to update")
    name: Optional[str] = Field(None, description="New name for the type")
    description: Optional[str] = Field(None, description="New description")
    icon: Optional[str] = Field(None, description="New emoji icon")


class DeleteTypeInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type to delete")


class CreateFieldInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type to add the field to")
    name: str = Field(..., min_length=1, description='Field name, e.g. "Full Name", "Email", "Status"')
    type: FieldTypeName = Field(..., description="The field data type")
    required: bool = Field(False, description="Whether this field is required. Default: false")
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description=(
            'Field configuration. For select/multi_select: { "options": ["Option1", "Option2"] }. '
            'For relation: { "relatedTypeId": "<uuid>" }.'
        ),
    )


class UpdateFieldInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type containing the field")
    field_id: str = Field(..., description="UUID of the field to update")
    name: Optional[str] = Field(None, description="New name for the field")
    required: Optional[bool] = Field(None, description="Whether the field is required")
    config: Optional[Dict[str, Any]] = Field(None, description="Updated config object")


class DeleteFieldInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type containing the field")
    field_id: str = Field(..., description="UUID of the field to delete")


class CreateRecordInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type to create the record in")
    data: Dict[str, Any] = Field(
        ...,
        description=(
            "Record data as { fieldId: value } pairs. Text fields take strings, number fields take numbers, "
            'boolean fields take true/false, date fields take "YYYY-MM-DD" strings, select takes a string '
            "matching one of the options, multi_select takes an array of strings, relation takes a record UUID."
        ),
    )


class ListRecordsInput(ToolInput):
    type_id: str = Field(..., description="UUID of the type whose records to list")
    page: int = Field(1, description="Page number (default: 1)")
    page_size: int = Field(
        DEFAULT_PAGE_SIZE,
        description=f"Results per page (default: {DEFAULT_PAGE_SIZE}, max: {MAX_PAGE_SIZE})",
    )

    @field_validator("page")
    @classmethod
    def _clamp_page(cls, value: int) -> int:
        return max(1, value)

    @field_validator("page_size")
    @classmethod
    def _clamp_page_size(cls, value: int) -> int:
        # oversize requests are clamped, not rejected
        return max(1, min(value, MAX_PAGE_SIZE))


class CreateAutomationInput(ToolInput):
    name: str = Field(..., min_length=1, description="Human-readable name for the automation")
    description: Optional[str] = Field(None, description="What this automation does")
    type_id: str = Field(..., description="UUID of the type this automation triggers on")
    trigger: AutomationTriggerName = Field(..., description="When this automation should trigger")
    code: str = Field(
        ...,
        min_length=1,
        description=(
            "Python code to execute. Has access to ctx, field_map, pd, create_record(), update_record(), "
            "delete_record(), log()."
        ),
    )


class ListAutomationsInput(ToolInput):
    type_id: Optional[str] = Field(None, description="Optional UUID of a type to filter automations by")
