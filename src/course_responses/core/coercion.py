from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import numpy as np
import pandas as pd
from pandas.api.types import is_datetime64_any_dtype

from course_responses.config import DEFAULT_TIME_ZONE
from course_responses.core.table import Responses, as_text, split_responses, with_data

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Recognized columns
#
# Every column named here is converted to its category's type. Anything else
# becomes text. Columns absent from a table are skipped.
# ---------------------------------------------------------------------------

INTEGER = "integer"
NUMERIC = "numeric"
DATETIME = "datetime"
JSON_LIST = "json"

COLUMN_TYPES: Dict[str, str] = {
    "attempt": INTEGER,
    "lrn_question_position": INTEGER,
    "points_possible": NUMERIC,
    "points_earned": NUMERIC,
    "dt_submitted": DATETIME,
    "lrn_dt_started": DATETIME,
    "lrn_dt_saved": DATETIME,
    "lrn_response_json": JSON_LIST,
}

# Trailing UTC offset after a time of day, e.g. "09:30:00+01:00" or "09:30Z"
_OFFSET_PATTERN = re.compile(
    r"\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?\s*(?:Z|[+-]\d{2}(?::?\d{2})?)$",
    re.IGNORECASE,
)


def _text_objects(values: pd.Series) -> pd.Series:
    """Text column as plain Python objects, None where missing."""
    return pd.Series(
        [None if v is pd.NA else v for v in as_text(values)],
        index=values.index,
        dtype=object,
    )


def _to_integer(values: pd.Series, time_zone: str) -> pd.Series:
    numbers = pd.to_numeric(_text_objects(values), errors="coerce").astype(float)
    # Outside int64 (or not finite) cannot be held by Int64; treat as unparsable
    numbers = numbers.where(np.isfinite(numbers) & (numbers.abs() < 2**63))
    # Truncate toward zero like an integer cast; unparsable cells stay missing
    return pd.Series(np.trunc(numbers), index=values.index).astype("Int64")


def _to_numeric(values: pd.Series, time_zone: str) -> pd.Series:
    return pd.to_numeric(_text_objects(values), errors="coerce").astype(float)


def _in_zone(parsed: pd.Series, time_zone: str) -> pd.Series:
    if parsed.dt.tz is None:
        return parsed.dt.tz_localize(time_zone, ambiguous="NaT", nonexistent="NaT")
    return parsed.dt.tz_convert(time_zone)


def _has_offset(value: Any) -> bool:
    return value is not None and bool(_OFFSET_PATTERN.search(str(value).strip()))


def _to_datetime(values: pd.Series, time_zone: str) -> pd.Series:
    text = _text_objects(values)
    try:
        parsed = pd.to_datetime(text, errors="coerce", format="mixed")
    except ValueError:
        parsed = None
    if parsed is not None and is_datetime64_any_dtype(parsed):
        return _in_zone(parsed, time_zone)

    # Naive and offset text (or several offsets) in one column. Naive cells
    # are wall-clock time in the zone; offset cells are instants converted to it.
    offset = text.map(_has_offset).astype(bool)
    naive = pd.to_datetime(text.where(~offset), errors="coerce", format="mixed", utc=True)
    aware = pd.to_datetime(text.where(offset), errors="coerce", format="mixed", utc=True)

    local = _in_zone(naive.dt.tz_localize(None), time_zone)
    return local.where(~offset, aware.dt.tz_convert(time_zone))


def _parse_json_cell(value: Any) -> Any:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _to_json_list(values: pd.Series, time_zone: str) -> pd.Series:
    parsed = [_parse_json_cell(v) for v in _text_objects(values)]
    return pd.Series(parsed, index=values.index, dtype=object)


_CONVERTERS: Dict[str, Callable[[pd.Series, str], pd.Series]] = {
    INTEGER: _to_integer,
    NUMERIC: _to_numeric,
    DATETIME: _to_datetime,
    JSON_LIST: _to_json_list,
}


def _check_time_zone(time_zone: str) -> str:
    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {time_zone!r}") from exc
    return time_zone


def coerce_types(responses: Responses, time_zone: Optional[str] = None) -> Responses:
    """
    Convert response columns to their analysis types.

    Recognized columns (COLUMN_TYPES) are rebuilt from their text form:
      - integer:  nullable Int64
      - numeric:  float64
      - datetime: tz-aware, interpreted in `time_zone` (default UTC)
      - json:     object column of parsed values, None for empty/unparsable cells

    All other columns become nullable text. Cells that cannot be parsed turn
    into missing values; this stage never drops rows and never raises on data.
    """
    zone = _check_time_zone(time_zone or DEFAULT_TIME_ZONE)
    frame, _ = split_responses(responses)

    converted: Dict[str, pd.Series] = {}
    for col in frame.columns:
        category = COLUMN_TYPES.get(col)
        if category is None:
            converted[col] = as_text(frame[col])
        else:
            converted[col] = _CONVERTERS[category](frame[col], zone)

    out = pd.DataFrame(converted, index=frame.index, columns=frame.columns)

    typed = [c for c in frame.columns if c in COLUMN_TYPES]
    logger.debug("Coerced %d typed columns (%s) in zone %s", len(typed), typed, zone)
    return with_data(responses, out)
