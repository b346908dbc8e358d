from __future__ import annotations

import logging
import warnings
from typing import Dict, List

import numpy as np
import pandas as pd

from course_responses.core.options import prune_option_lookup
from course_responses.core.table import (
    ResponseDataWarning,
    Responses,
    ResponseSchemaError,
    ResponseTable,
    is_blank,
    missing_columns,
    missing_columns_message,
    plural,
    split_responses,
    with_data,
)

logger = logging.getLogger(__name__)

# Identifying fields every response row needs, in reporting order
REQUIRED_COLUMNS = ["class_id", "student_id", "prompt"]


def _format_rows(positions: List[int]) -> str:
    return f"{plural('row', len(positions))} {', '.join(str(p) for p in positions)}"


def _drop_message(n_dropped: int, missing_at: Dict[str, List[int]]) -> str:
    lines = [f"Dropped {n_dropped} {plural('row', n_dropped)}:"]
    for col in REQUIRED_COLUMNS:
        positions = missing_at.get(col) or []
        if positions:
            lines.append(f" - missing {col} at {_format_rows(positions)}")
    return "\n".join(lines)


def validate(responses: Responses) -> Responses:
    """
    Drop response rows that lack an identifying field.

    A row is dropped when class_id, student_id or prompt is missing or an
    empty string. All drops are reported in a single ResponseDataWarning,
    with 1-based row positions from the input order, e.g.

        Dropped 3 rows:
         - missing class_id at rows 1, 2
         - missing student_id at rows 1, 3
         - missing prompt at row 3

    Raises ResponseSchemaError when any identifying column is absent.
    The returned rows keep their order and get a fresh 0..n-1 index. An
    attached option lookup loses the questions whose mcq rows were all
    dropped.
    """
    frame, lookup = split_responses(responses)

    missing = missing_columns(frame, REQUIRED_COLUMNS)
    if missing:
        raise ResponseSchemaError(missing_columns_message("Response table missing required", missing))

    blank = pd.DataFrame({col: is_blank(frame[col]) for col in REQUIRED_COLUMNS}, index=frame.index)
    invalid = blank.any(axis=1).to_numpy()

    kept = frame.loc[~invalid].reset_index(drop=True)

    n_dropped = int(invalid.sum())
    if n_dropped:
        missing_at = {
            col: (np.flatnonzero(blank[col].to_numpy()) + 1).tolist()
            for col in REQUIRED_COLUMNS
        }
        warnings.warn(_drop_message(n_dropped, missing_at), ResponseDataWarning, stacklevel=2)

    logger.info("Validated %d response rows; kept %d, dropped %d", len(frame), len(kept), n_dropped)
    if isinstance(responses, ResponseTable) and lookup is not None:
        return ResponseTable(data=kept, option_lookup=prune_option_lookup(lookup, kept))
    return with_data(responses, kept)
