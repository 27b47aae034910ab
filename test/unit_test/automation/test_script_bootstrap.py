from __future__ import annotations

import json

from appweaver_ai.automation.bootstrap import (
    CreateRecordAction,
    DeleteRecordAction,
    UpdateRecordAction,
    build_context,
    build_script,
    parse_output,
)
from appweaver_ai.core.models import (
    Automation,
    AutomationTrigger,
    RecordEvent,
    RecordEventType,
    RunLogLevel,
)


def _automation(code: str = "log('hi')") -> Automation:
    return Automation(app_id="a", type_id="t", name="n", trigger=AutomationTrigger.record_created, code=code)


def _event() -> RecordEvent:
    return RecordEvent(
        type=RecordEventType.record_updated,
        app_id="a",
        type_id="t",
        record_id="r1",
        record={"f1": "new"},
        previous_record={"f1": "old"},
    )


class TestBuildScript:
    def test_context_for_record_event(self) -> None:
        assert build_context(_event()) == {
            "type": "record_updated",
            "record": {"f1": "new"},
            "record_id": "r1",
            "previous_record": {"f1": "old"},
        }

    def test_context_for_manual_run(self) -> None:
        assert build_context(None) == {"type": "manual", "record": {}, "record_id": None, "previous_record": None}

    def test_script_wraps_user_code_with_helpers_and_trailer(self) -> None:
        script = build_script(_automation("log(ctx['record_id'])"), _event(), {"f1": "Name", "Name": "f1"})

        assert "def create_record(type_id, data):" in script
        assert "def log(msg):" in script
        assert "log(ctx['record_id'])" in script
        assert script.index("log(ctx['record_id'])") < script.index('print("__ACTIONS__:"')
        compile(script, "<automation>", "exec")

    def test_user_data_cannot_break_out_of_literals(self) -> None:
        event = RecordEvent(
            type=RecordEventType.record_created,
            app_id="a",
            type_id="t",
            record_id="r1",
            record={"f1": "''')\nimport os\n#\"\"\""},
        )

        script = build_script(_automation(), event, {})

        namespace: dict = {}
        preamble = script.split("# --- User automation code ---")[0]
        exec(compile(preamble, "<preamble>", "exec"), namespace)
        assert namespace["ctx"]["record"]["f1"] == "''')\nimport os\n#\"\"\""
        assert "os" not in namespace


class TestParseOutput:
    def test_logs_and_actions(self) -> None:
        actions = [
            {"action": "create_record", "type_id": "t", "data": {"f1": 1}},
            {"action": "update_record", "type_id": "t", "record_id": "r1", "data": {"f1": 2}},
            {"action": "delete_record", "type_id": "t", "record_id": "r2"},
        ]
        stdout = "\n".join(
            [
                "__LOG__:starting",
                "plain print is ignored",
                "__WARN__:careful",
                "__ERROR__:bad thing",
                "__ACTIONS__:" + json.dumps(actions),
            ]
        )

        parsed = parse_output(stdout)

        assert [(e.level, e.message) for e in parsed.logs] == [
            (RunLogLevel.info, "starting"),
            (RunLogLevel.warn, "careful"),
            (RunLogLevel.error, "bad thing"),
        ]
        assert [type(a) for a in parsed.actions] == [CreateRecordAction, UpdateRecordAction, DeleteRecordAction]
        assert parsed.actions[1].record_id == "r1"

    def test_malformed_actions_are_dropped(self) -> None:
        stdout = "__ACTIONS__:" + json.dumps(
            [{"action": "drop_table"}, {"action": "delete_record", "type_id": "t"}, {"action": "create_record", "type_id": "t"}]
        )

        parsed = parse_output(stdout)

        assert len(parsed.actions) == 1
        assert parsed.actions[0].data == {}

    def test_unparseable_actions_line(self) -> None:
        assert parse_output("__ACTIONS__:{not json").actions == []
        assert parse_output('__ACTIONS__:{"a": 1}').actions == []

    def test_empty_output(self) -> None:
        parsed = parse_output("")
        assert parsed.logs == [] and parsed.actions == []
