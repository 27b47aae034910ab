from __future__ import annotations

from appweaver_ai.agent_core.prompts import (
    BLANK_SLATE,
    SchemaSnapshot,
    build_system_prompt,
    describe_schema,
    load_schema_snapshot,
)
from appweaver_ai.core.models import EntityField, EntityType, FieldType


def _snapshot() -> SchemaSnapshot:
    contact = EntityType(id="t-contact", app_id="a", name="Contact", description="People we talk to", position=0)
    company = EntityType(id="t-company", app_id="a", name="Company", position=1)
    fields = {
        "t-contact": [
            EntityField(id="f-name", type_id="t-contact", name="Name", type=FieldType.text, required=True),
            EntityField(
                id="f-status",
                type_id="t-contact",
                name="Status",
                type=FieldType.select,
                config={"options": ["Lead", "Customer"]},
                position=1,
            ),
            EntityField(
                id="f-company",
                type_id="t-contact",
                name="Employer",
                type=FieldType.relation,
                config={"relatedTypeId": "t-company"},
                position=2,
            ),
        ],
    }
    return SchemaSnapshot(types=[contact, company], fields_by_type=fields)


def test_blank_slate() -> None:
    assert describe_schema(SchemaSnapshot(types=[])) == BLANK_SLATE


def test_describe_schema_lists_types_and_fields() -> None:
    text = describe_schema(_snapshot())

    assert text == "\n".join(
        [
            "Current app schema:",
            "",
            'Type: "Contact" (id: t-contact) - People we talk to',
            '  - "Name" (id: f-name, type: text, required)',
            '  - "Status" (id: f-status, type: select, options: [Lead, Customer])',
            '  - "Employer" (id: f-company, type: relation, relates to "Company")',
            "",
            'Type: "Company" (id: t-company)',
            "  Fields: none",
        ]
    )


def test_describe_schema_is_deterministic() -> None:
    assert describe_schema(_snapshot()) == describe_schema(_snapshot())


def test_relation_to_unknown_type_omits_target() -> None:
    snapshot = SchemaSnapshot(
        types=[EntityType(id="t1", app_id="a", name="Deal")],
        fields_by_type={
            "t1": [
                EntityField(
                    id="f1", type_id="t1", name="Owner", type=FieldType.relation, config={"relatedTypeId": "gone"}
                )
            ]
        },
    )

    assert describe_schema(snapshot).endswith('  - "Owner" (id: f1, type: relation)')


def test_system_prompt_embeds_schema() -> None:
    prompt = build_system_prompt(_snapshot())

    assert 'Type: "Contact" (id: t-contact)' in prompt
    assert "create_automation" in prompt
    assert "{field_id: value}" in prompt


async def test_load_schema_snapshot_reads_current_store(store, app) -> None:
    contact = await store.types.create(EntityType(app_id=app.id, name="Contact"))
    await store.fields.create(EntityField(type_id=contact.id, name="Name", type=FieldType.text))

    snapshot = await load_schema_snapshot(store, app.id)

    assert [t.name for t in snapshot.types] == ["Contact"]
    assert [f.name for f in snapshot.fields_by_type[contact.id]] == ["Name"]
    assert BLANK_SLATE not in build_system_prompt(snapshot)
