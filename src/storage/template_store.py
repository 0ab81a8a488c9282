from __future__ import annotations

import json
from datetime import time
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from family_scheduler.errors import TemplateError
from family_scheduler.models import WeeklyTemplate


def _time_to_str(t: time) -> str:
    """Convert time to HH:MM string."""
    return t.strftime("%H:%M")


class TemplateStore:
    """
    Weekly block templates for every student, kept in one JSON file:
    {"<student>": {"<Weekday>": [{"block_number": 2, "start_time": "9:20 AM", ...}]}}
    """

    def __init__(self, path: str = "data/weekly_template.json"):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, dict]:
        if not self.path.exists():
            raise TemplateError(f"template file not found: {self.path}")
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise TemplateError(f"unreadable template file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise TemplateError(f"template file {self.path} must hold a JSON object")
        return data

    def students(self) -> list:
        return sorted(self._read_all())

    def load(self, student: str) -> WeeklyTemplate:
        """
        Load one student's template. There is no default template, so a
        missing or broken one is an error.
        """
        data = self._read_all()
        if student not in data:
            raise TemplateError("no template defined", student=student)
        try:
            return WeeklyTemplate(days=data[student])
        except ValidationError as e:
            raise TemplateError(f"invalid template: {e}", student=student) from e

    def save(self, student: str, template: WeeklyTemplate) -> None:
        """Write one student's template, keeping the others untouched."""
        data = self._read_all() if self.path.exists() else {}

        days = template.model_dump()["days"]
        for blocks in days.values():
            for block in blocks:
                # Convert time objects to strings for JSON
                for key in ("start_time", "end_time"):
                    if isinstance(block.get(key), time):
                        block[key] = _time_to_str(block[key])
        data[student] = days

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
