from __future__ import annotations

import time
import traceback
import warnings
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import streamlit as st

from course_responses.config import APP_NAME, APP_VERSION, DATA_DIR, DEFAULT_TIME_ZONE
from course_responses.core.pipeline import process
from course_responses.core.source_loader import SourceLoaderError
from course_responses.core.table import ResponseDataWarning, ResponseSchemaError, ResponseTable


def _parse_class_ids(text: str) -> Optional[List[str]]:
    """
    "class_1, class_2" -> ["class_1", "class_2"]; blank -> None (all classes).
    """
    ids: List[str] = []
    for part in (text or "").split(","):
        p = part.strip()
        if p and p not in ids:
            ids.append(p)
    return ids or None


def _summarize(result: ResponseTable) -> Dict[str, Any]:
    data = result.data
    lookup = result.option_lookup

    summary: Dict[str, Any] = {
        "rows": len(data),
        "columns": len(data.columns),
        "classes": int(data["class_id"].nunique()) if "class_id" in data.columns else 0,
        "students": int(data["student_id"].nunique()) if "student_id" in data.columns else 0,
        "mcq_questions": 0 if lookup is None else len(lookup),
    }
    return summary


def _run_processing(
    source: str,
    class_ids: Optional[List[str]],
    time_zone: str,
) -> Tuple[ResponseTable, List[str]]:
    """Run process() and collect data warnings instead of letting them reach stderr."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ResponseDataWarning)
        result = process(source, class_id=class_ids, time_zone=time_zone)
    messages = [str(w.message) for w in caught if issubclass(w.category, ResponseDataWarning)]
    return result, messages


def _render_result(result: ResponseTable, messages: List[str]) -> None:
    for msg in messages:
        st.warning(msg)

    summary = _summarize(result)
    cols = st.columns(len(summary))
    for col, (label, value) in zip(cols, summary.items()):
        col.metric(label.replace("_", " ").capitalize(), value)

    st.write("Processed responses:")
    st.dataframe(result.data, use_container_width=True)

    with st.expander("Option lookup table", expanded=False):
        if result.option_lookup is None:
            st.write("No lookup was built (lrn_type / lrn_question_reference columns absent).")
        else:
            st.dataframe(result.option_lookup, use_container_width=True)

    with st.expander("Column types", expanded=False):
        dtypes = pd.DataFrame(
            {"column": result.data.columns, "dtype": [str(t) for t in result.data.dtypes]}
        )
        st.dataframe(dtypes, use_container_width=True)


def _render_processor() -> None:
    with st.expander("Process responses", expanded=True):
        col1, col2 = st.columns(2)

        with col1:
            source = st.text_input(
                "Source (response file, class directory, download root, or archive):",
                value=str(DATA_DIR),
            )
            class_text = st.text_input(
                "Class ids (comma-separated, blank = all classes):",
                value="",
            )

        with col2:
            time_zone = st.text_input("Time zone for datetime columns:", value=DEFAULT_TIME_ZONE)

        if st.button("Process responses", key="process_responses_btn"):
            status = st.status("Processing responses…", expanded=True)
            t0 = time.perf_counter()

            try:
                class_ids = _parse_class_ids(class_text)
                status.write(f"Resolved params: source={source!r}, class_id={class_ids}, time_zone={time_zone!r}")

                result, messages = _run_processing(source.strip(), class_ids, time_zone.strip())

                status.write(f"Processed {len(result)} rows in {time.perf_counter() - t0:0.2f}s")
                status.update(label="Done.", state="complete")
                _render_result(result, messages)

            except (SourceLoaderError, ResponseSchemaError, ValueError) as err:
                status.update(label="Processing failed.", state="error")
                st.error(f"Processing failed: {err}")
                st.text_area("Traceback", value=traceback.format_exc(), height=240)


def run_app() -> None:
    st.set_page_config(page_title=APP_NAME, layout="wide")
    st.title(APP_NAME)
    st.caption(f"Version {APP_VERSION}")

    _render_processor()
