from __future__ import annotations

import json
import logging
import re
import warnings
from typing import Any, Dict, List, Optional

import pandas as pd

from course_responses.config import OPTION_DELIMITER
from course_responses.core.table import (
    TEXT_DTYPE,
    ResponseDataWarning,
    Responses,
    ResponseSchemaError,
    ResponseTable,
    as_text,
    is_blank,
    missing_columns,
    missing_columns_message,
    split_responses,
)

logger = logging.getLogger(__name__)

RESPONSE_COL = "response"
TYPE_COL = "lrn_type"
REFERENCE_COL = "lrn_question_reference"
MCQ_TYPE = "mcq"

OPTION_COL_PATTERN = re.compile(r"^lrn_option_(\d+)$")

# Columns needed to build the lookup, in reporting order
LOOKUP_KEY_COLUMNS = [TYPE_COL, REFERENCE_COL]


# ---------------------------------------------------------------------------
# Lookup table
# ---------------------------------------------------------------------------

def option_columns(frame: pd.DataFrame) -> List[str]:
    """
    lrn_option_0 .. lrn_option_k, where k is the highest index present.

    Gaps in the numbering are included so position i always names option i.
    """
    indices = [
        int(m.group(1))
        for m in (OPTION_COL_PATTERN.match(str(c)) for c in frame.columns)
        if m
    ]
    if not indices:
        return []
    return [f"lrn_option_{i}" for i in range(max(indices) + 1)]


def _mcq_mask(frame: pd.DataFrame) -> pd.Series:
    is_mcq = as_text(frame[TYPE_COL]).eq(MCQ_TYPE).fillna(False).astype(bool)
    return is_mcq & ~is_blank(frame[REFERENCE_COL])


def build_option_lookup(frame: pd.DataFrame) -> pd.DataFrame:
    """
    One row per multiple-choice question reference with its option texts.

    Only rows typed "mcq" with a question reference contribute. The first row
    seen for each reference supplies the option texts. Rows are ordered by
    reference, and all columns are text, so the table does not depend on
    which rows were dropped before it or on whether the responses were
    type-coerced.
    """
    cols = [REFERENCE_COL] + option_columns(frame)
    mcq = frame.loc[_mcq_mask(frame)].reindex(columns=cols)

    lookup = pd.DataFrame({c: as_text(mcq[c]) for c in cols}, index=mcq.index, columns=cols)
    lookup = lookup.drop_duplicates(subset=[REFERENCE_COL], keep="first")
    lookup = lookup.sort_values(REFERENCE_COL, kind="mergesort").reset_index(drop=True)

    logger.debug("Built option lookup: %d questions, %d option columns", len(lookup), len(cols) - 1)
    return lookup


def prune_option_lookup(lookup: pd.DataFrame, frame: pd.DataFrame) -> pd.DataFrame:
    """
    Keep only lookup rows whose reference still has an mcq row in `frame`.

    Used after rows are dropped, so a lookup built before the drop matches one
    built from the remaining rows.
    """
    if missing_columns(frame, LOOKUP_KEY_COLUMNS):
        return lookup

    remaining = set(as_text(frame.loc[_mcq_mask(frame), REFERENCE_COL]))
    keep = lookup[REFERENCE_COL].isin(remaining).to_numpy()
    return lookup.loc[keep].reset_index(drop=True)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _parse_selection(text: str) -> Optional[List[str]]:
    """Selected indices from a JSON array like '["0", "1"]'; None if not an array."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    if not isinstance(parsed, list):
        return None
    return [str(v).strip() for v in parsed]


def _option_text(options: List[Any], index: str) -> Optional[str]:
    try:
        i = int(index)
    except ValueError:
        return None
    if i < 0 or i >= len(options):
        return None
    value = options[i]
    if pd.isna(value):
        return None
    return str(value)


def _decode(
    text: Any,
    question_type: Any,
    reference: Any,
    options_by_ref: Dict[str, List[Any]],
) -> Any:
    if pd.isna(text):
        return pd.NA

    selection = _parse_selection(text)
    if selection is None:
        return text
    if not selection:
        return pd.NA

    if pd.isna(question_type) or question_type != MCQ_TYPE:
        return text
    if pd.isna(reference) or reference not in options_by_ref:
        return text

    labels: List[str] = []
    for index in selection:
        label = _option_text(options_by_ref[reference], index)
        if label is None:
            # Not decodable with this question's options; keep what was recorded
            return text
        labels.append(label)
    return OPTION_DELIMITER.join(labels)


def resolve_options(responses: Responses) -> ResponseTable:
    """
    Rewrite encoded multiple-choice responses as their option texts.

    For rows typed "mcq" whose question reference appears in the lookup, a
    response like '["0", "1"]' becomes "Yes; No" (array order). An empty
    array '[]' becomes a missing value for every row. Everything else keeps
    its recorded response.

    Returns a ResponseTable carrying the lookup in `option_lookup`.

    If lrn_type or lrn_question_reference is absent the rows are returned
    unchanged with a ResponseDataWarning. A table without a response column
    (including one with no columns at all) raises ResponseSchemaError instead:
    there is nothing to pass through, so the warn-and-return path does not
    apply.
    """
    frame, previous_lookup = split_responses(responses)

    if RESPONSE_COL not in frame.columns:
        raise ResponseSchemaError(
            missing_columns_message("Response table missing required", [RESPONSE_COL])
        )

    missing = missing_columns(frame, LOOKUP_KEY_COLUMNS)
    if missing:
        warnings.warn(
            missing_columns_message("missing required", missing),
            ResponseDataWarning,
            stacklevel=2,
        )
        return ResponseTable(data=frame.copy(), option_lookup=previous_lookup)

    lookup = build_option_lookup(frame)
    option_cols = list(lookup.columns[1:])
    options_by_ref: Dict[str, List[Any]] = {
        row[REFERENCE_COL]: [row[c] for c in option_cols]
        for row in lookup.to_dict("records")
    }

    texts = as_text(frame[RESPONSE_COL])
    types = as_text(frame[TYPE_COL])
    refs = as_text(frame[REFERENCE_COL])

    decoded = [
        _decode(text, question_type, reference, options_by_ref)
        for text, question_type, reference in zip(texts, types, refs)
    ]

    out = frame.copy()
    out[RESPONSE_COL] = pd.Series(decoded, index=frame.index, dtype=TEXT_DTYPE)

    n_changed = int((out[RESPONSE_COL].fillna("\0") != texts.fillna("\0")).sum())
    logger.info("Resolved options for %d of %d responses", n_changed, len(frame))
    return ResponseTable(data=out, option_lookup=lookup)
