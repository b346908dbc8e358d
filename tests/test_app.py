from __future__ import annotations

import pandas as pd
import pytest

from course_responses.core.table import ResponseTable
from course_responses.ui.app import _parse_class_ids, _run_processing, _summarize


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", None),
        ("   ", None),
        ("class_1", ["class_1"]),
        ("class_1, class_2", ["class_1", "class_2"]),
        ("class_1,,class_1 , class_2,", ["class_1", "class_2"]),
    ],
)
def test_parse_class_ids(text, expected):
    assert _parse_class_ids(text) == expected


def test_summary_counts_rows_classes_students_and_questions():
    data = pd.DataFrame({"class_id": ["a", "a", "b"], "student_id": ["1", "2", "1"], "response": ["x"] * 3})
    lookup = pd.DataFrame({"lrn_question_reference": ["q1", "q2"]})

    summary = _summarize(ResponseTable(data=data, option_lookup=lookup))

    assert summary == {"rows": 3, "columns": 3, "classes": 2, "students": 2, "mcq_questions": 2}


def test_summary_without_lookup():
    summary = _summarize(ResponseTable(data=pd.DataFrame({"response": []})))

    assert summary["mcq_questions"] == 0
    assert summary["classes"] == 0


def test_run_processing_collects_data_warnings(tmp_path, export_responses):
    class_dir = tmp_path / "exports" / "class_a"
    class_dir.mkdir(parents=True)
    export_responses.to_csv(class_dir / "responses.csv", index=False)

    result, messages = _run_processing(str(tmp_path / "exports"), None, "UTC")

    assert len(result) == 3
    assert messages == ["Dropped 1 row:\n - missing student_id at row 3"]
