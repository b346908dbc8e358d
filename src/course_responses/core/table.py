from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Tuple, Union

import pandas as pd
from pandas.api.types import is_float_dtype

# Nullable text dtype (missing values are pd.NA)
TEXT_DTYPE = pd.StringDtype()


class ResponseSchemaError(ValueError):
    """Raised when a response table lacks columns a stage cannot work without."""


class ResponseDataWarning(UserWarning):
    """Emitted when rows are dropped or a stage is skipped because of the data."""


@dataclass(eq=False)
class ResponseTable:
    """
    Processed responses plus the multiple-choice lookup derived from them.

    The lookup travels beside the rows instead of as extra columns, so the
    shape of `data` is exactly the shape of the validated input.
    """
    data: pd.DataFrame
    option_lookup: Optional[pd.DataFrame] = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.data)

    def equals(self, other: object) -> bool:
        if not isinstance(other, ResponseTable):
            return False
        if not self.data.equals(other.data):
            return False
        if self.option_lookup is None or other.option_lookup is None:
            return self.option_lookup is None and other.option_lookup is None
        return self.option_lookup.equals(other.option_lookup)


Responses = Union[pd.DataFrame, ResponseTable]


def split_responses(responses: Responses) -> Tuple[pd.DataFrame, Optional[pd.DataFrame]]:
    """Return (rows, lookup) for either kind of response input."""
    if isinstance(responses, ResponseTable):
        return responses.data, responses.option_lookup
    if isinstance(responses, pd.DataFrame):
        return responses, None
    raise TypeError(
        f"Expected a pandas DataFrame or ResponseTable, got {type(responses).__name__}"
    )


def with_data(responses: Responses, data: pd.DataFrame) -> Responses:
    """Return `data` in the same kind of container `responses` came in."""
    if isinstance(responses, ResponseTable):
        return replace(responses, data=data)
    return data


def _format_float(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def as_text(values: pd.Series) -> pd.Series:
    """
    Convert a column to nullable text.

    Whole floats lose their ".0" so a numeric column held in memory and the
    same column read back from a text file give identical strings.
    """
    if is_float_dtype(values.dtype):
        values = values.map(_format_float, na_action="ignore")
    return values.astype(TEXT_DTYPE)


def is_blank(values: pd.Series) -> pd.Series:
    """Boolean mask: missing value or empty string."""
    text = as_text(values)
    return (text.isna() | text.eq("")).fillna(True).astype(bool)


def missing_columns(frame: pd.DataFrame, required: Iterable[str]) -> List[str]:
    return [c for c in required if c not in frame.columns]


def missing_columns_message(prefix: str, missing: List[str]) -> str:
    """
    "<prefix> column: a" for one name, "<prefix> columns: a, b" for several.
    """
    noun = "column" if len(missing) == 1 else "columns"
    return f"{prefix} {noun}: {', '.join(missing)}"


def plural(word: str, count: int) -> str:
    return word if count == 1 else f"{word}s"
