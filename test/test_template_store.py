import json
from datetime import time
from pathlib import Path

import pytest

from conftest import weekday_template
from family_scheduler.errors import TemplateError
from storage.template_store import TemplateStore

SHIPPED = Path(__file__).resolve().parent.parent / "data" / "weekly_template.json"


def test_save_and_load(tmp_path):
    store = TemplateStore(str(tmp_path / "templates.json"))
    template = weekday_template((2, "09:00", "09:45"), (6, "13:00", "13:45"))

    store.save("Khalil", template)
    loaded = store.load("Khalil")

    assert loaded == template
    assert [b.start_time for b in loaded.assignment_blocks_for("Friday")] == [time(9, 0), time(13, 0)]


def test_save_keeps_other_students(tmp_path):
    store = TemplateStore(str(tmp_path / "templates.json"))
    store.save("Abigail", weekday_template((2, "09:00", "09:45")))
    store.save("Khalil", weekday_template((3, "10:00", "10:45")))
    assert store.students() == ["Abigail", "Khalil"]


def test_missing_file(tmp_path):
    with pytest.raises(TemplateError, match="not found"):
        TemplateStore(str(tmp_path / "nope.json")).load("Abigail")


def test_corrupted_file(tmp_path):
    path = tmp_path / "templates.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(TemplateError, match="unreadable"):
        TemplateStore(str(path)).load("Abigail")


def test_unknown_student(tmp_path):
    path = tmp_path / "templates.json"
    path.write_text(json.dumps({"Abigail": {}}), encoding="utf-8")
    with pytest.raises(TemplateError) as exc:
        TemplateStore(str(path)).load("Khalil")
    assert exc.value.student == "Khalil"


def test_invalid_block_rows(tmp_path):
    path = tmp_path / "templates.json"
    path.write_text(
        json.dumps({"Abigail": {"Monday": [{"block_number": 0, "start_time": "9:00 AM"}]}}),
        encoding="utf-8",
    )
    with pytest.raises(TemplateError, match="invalid template"):
        TemplateStore(str(path)).load("Abigail")


def test_shipped_family_template():
    store = TemplateStore(str(SHIPPED))
    assert {"Abigail", "Khalil"} <= set(store.students())

    monday = store.load("Abigail").assignment_blocks_for("Monday")
    assert monday
    assert all(b.is_assignment_block for b in monday)
    assert all(b.duration_min for b in monday)
