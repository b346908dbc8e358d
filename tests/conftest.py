from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, List

import pandas as pd
import pytest
from pandas.testing import assert_frame_equal

from course_responses.core.table import ResponseDataWarning, ResponseTable


@pytest.fixture
def integration_responses() -> pd.DataFrame:
    """Smallest table every stage accepts."""
    return pd.DataFrame(
        {
            "class_id": [1],
            "student_id": [1],
            "prompt": [1],
            "response": [1],
            "lrn_type": [1],
            "lrn_question_reference": [1],
        }
    )


@pytest.fixture
def lookup_responses() -> pd.DataFrame:
    """Two mcq questions (1 and 3) and one plaintext question (2)."""
    return pd.DataFrame(
        {
            "student_id": [1, 1, 1, 1],
            "prompt": ["text"] * 4,
            "lrn_question_reference": [1, 2, 1, 3],
            "lrn_type": ["mcq", "plaintext", "mcq", "mcq"],
            "response": ['["1"]', '["2"]', '["0", "1"]', "[]"],
            "lrn_option_0": ["Yes", "1", "Yes", "50"],
            "lrn_option_1": ["No", "2", "No", "60"],
            "lrn_option_2": [None, "Three", None, "70"],
        }
    )


@pytest.fixture
def export_responses() -> pd.DataFrame:
    """Raw text export: typed columns, mcq and plaintext rows, one row without a student."""
    return pd.DataFrame(
        {
            "class_id": ["c1", "c1", "c1", "c1"],
            "student_id": ["s1", "s2", None, "s1"],
            "prompt": ["Q1", "Q1", "Q2", "Q3"],
            "attempt": ["1", "2", "1", "1"],
            "points_possible": ["1", "1", "2", "1"],
            "points_earned": ["1", "0.5", "", "1"],
            "dt_submitted": ["2024-01-01 10:00:00", "2024-01-02", "", "not a date"],
            "lrn_response_json": ['{"value": ["0"]}', "", ";", "[1, 2]"],
            "lrn_question_reference": ["q1", "q1", "q2", "q3"],
            "lrn_type": ["mcq", "mcq", "plaintext", "mcq"],
            "response": ['["0"]', '["1", "0"]', "hello", "[]"],
            "lrn_option_0": ["Yes", "Yes", None, "A"],
            "lrn_option_1": ["No", "No", None, "B"],
        }
    )


@pytest.fixture
def dropped_mcq_responses() -> pd.DataFrame:
    """Validation drops the only q1 row and the first q2 row; q0 sorts ahead of both."""
    return pd.DataFrame(
        {
            "class_id": ["c1", "c1", "c1", "c1"],
            "student_id": [None, None, "s1", "s2"],
            "prompt": ["Q1", "Q2", "Q2", "Q0"],
            "lrn_question_reference": ["q1", "q2", "q2", "q0"],
            "lrn_type": ["mcq", "mcq", "mcq", "mcq"],
            "response": ['["0"]', '["1"]', '["0"]', '["1"]'],
            "lrn_option_0": ["Yes", "A", "A", "Low"],
            "lrn_option_1": ["No", "B", "B", "High"],
        }
    )


def _write_class_tree(root: Path, table: pd.DataFrame, classes: List[str]) -> Path:
    for name in classes:
        class_dir = root / "classes" / name
        class_dir.mkdir(parents=True)
        table.to_csv(class_dir / "responses.csv", index=False)
    return root


@pytest.fixture
def download_root(tmp_path: Path, integration_responses: pd.DataFrame) -> Path:
    """<root>/classes/class_{1,2}/responses.csv, both holding the integration table."""
    return _write_class_tree(tmp_path / "data_download", integration_responses, ["class_1", "class_2"])


@pytest.fixture
def download_zip(tmp_path: Path, download_root: Path) -> Path:
    archive = shutil.make_archive(
        str(tmp_path / "snapshot"),
        "zip",
        root_dir=download_root.parent,
        base_dir=download_root.name,
    )
    return Path(archive)


@pytest.fixture
def scratch_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect temporary directories so tests can check nothing is left behind."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr("tempfile.tempdir", str(scratch))
    return scratch


@pytest.fixture
def assert_same_table() -> Callable[[ResponseTable, ResponseTable], None]:
    def _check(left: ResponseTable, right: ResponseTable) -> None:
        assert isinstance(left, ResponseTable)
        assert isinstance(right, ResponseTable)
        assert_frame_equal(left.data, right.data)
        if left.option_lookup is None or right.option_lookup is None:
            assert left.option_lookup is None and right.option_lookup is None
        else:
            assert_frame_equal(left.option_lookup, right.option_lookup)
        assert left.equals(right)

    return _check


def data_warnings(record) -> List[str]:
    return [str(w.message) for w in record if issubclass(w.category, ResponseDataWarning)]


@pytest.fixture
def warning_messages() -> Callable:
    return data_warnings
