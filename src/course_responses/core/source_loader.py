from __future__ import annotations

import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

import pandas as pd

from course_responses.config import (
    ARCHIVE_EXTENSIONS,
    LOADER_MAX_WORKERS,
    RESPONSE_FILE_STEM,
    TABULAR_EXTENSIONS,
)

logger = logging.getLogger(__name__)

Source = Union[pd.DataFrame, str, "os.PathLike[str]"]
ClassFilter = Optional[Union[str, Iterable[str]]]


class SourceLoaderError(Exception):
    """Raised when a response source cannot be located or read."""


@dataclass(frozen=True)
class ResponseFile:
    class_id: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _normalize_class_filter(class_id: ClassFilter) -> Optional[List[str]]:
    if class_id is None:
        return None
    if isinstance(class_id, str):
        return [class_id]
    return [str(c) for c in class_id]


def _archive_suffix(path: Path) -> Optional[str]:
    name = path.name.lower()
    for ext in ARCHIVE_EXTENSIONS:
        if name.endswith(ext):
            return ext
    return None


def is_archive(path: Path) -> bool:
    return _archive_suffix(Path(path)) is not None


def is_tabular(path: Path) -> bool:
    return Path(path).suffix.lower() in TABULAR_EXTENSIONS


def _is_response_file(path: Path) -> bool:
    return path.is_file() and is_tabular(path) and path.stem.lower() == RESPONSE_FILE_STEM.lower()


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def read_response_file(path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Read one exported response file with every column as text.

    Empty cells become missing values; typing is left to coerce_types().
    """
    path = Path(path)
    sep = TABULAR_EXTENSIONS.get(path.suffix.lower())
    if sep is None:
        raise SourceLoaderError(
            f"Unsupported response file type {path.suffix!r} ({path}). "
            f"Expected one of: {', '.join(TABULAR_EXTENSIONS)}."
        )

    try:
        df = pd.read_csv(path, sep=sep, dtype=str)
    except (OSError, ValueError) as exc:
        raise SourceLoaderError(f"Could not read response file {path}: {exc}") from exc

    df.columns = [str(c).strip() for c in df.columns]
    logger.info("Read %s: rows=%d, cols=%d", path, len(df), len(df.columns))
    return df


def _read_all(paths: List[Path], max_workers: int) -> List[pd.DataFrame]:
    if max_workers > 1 and len(paths) > 1:
        # map() yields in submission order, so concatenation order is unchanged
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(read_response_file, paths))
    return [read_response_file(p) for p in paths]


def _concat(frames: List[pd.DataFrame]) -> pd.DataFrame:
    if len(frames) == 1:
        return frames[0].reset_index(drop=True)
    return pd.concat(frames, ignore_index=True, sort=False)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def discover_response_files(
    root: Union[str, "os.PathLike[str]"],
    class_id: ClassFilter = None,
) -> List[ResponseFile]:
    """
    Find the responses file of every class under `root`.

    A class is the directory holding a responses.<csv|tsv> file, so `root`
    may be a single class directory, a download root with one directory per
    class, or a root with extra nesting such as <root>/classes/<class>/.

    Results are in lexicographic path order. `class_id` keeps only classes
    whose directory name matches.
    """
    root = Path(root)
    wanted = _normalize_class_filter(class_id)

    by_class_dir: Dict[Path, List[Path]] = {}
    for path in sorted(root.rglob("*")):
        if _is_response_file(path):
            by_class_dir.setdefault(path.parent, []).append(path)

    found: List[ResponseFile] = []
    for class_dir in sorted(by_class_dir):
        files = by_class_dir[class_dir]
        if len(files) > 1:
            names = ", ".join(f.name for f in files)
            raise SourceLoaderError(
                f"Class directory {class_dir} has more than one responses file: {names}"
            )
        found.append(ResponseFile(class_id=class_dir.name, path=files[0]))

    if not found:
        raise SourceLoaderError(
            f"No {RESPONSE_FILE_STEM} files ({', '.join(TABULAR_EXTENSIONS)}) found under {root}"
        )

    if wanted is not None:
        found = [f for f in found if f.class_id in wanted]
        if not found:
            raise SourceLoaderError(
                f"No responses found for class {', '.join(wanted)} under {root}"
            )

    logger.info("Discovered %d class response files under %s", len(found), root)
    return found


def _load_directory(root: Path, class_id: ClassFilter, max_workers: int) -> pd.DataFrame:
    files = discover_response_files(root, class_id=class_id)
    frames = _read_all([f.path for f in files], max_workers=max_workers)
    return _concat(frames)


@contextmanager
def expanded_archive(path: Union[str, "os.PathLike[str]"]) -> Iterator[Path]:
    """
    Unpack an archive into a temporary directory for the duration of the block.

    The directory is removed on exit, whether the block succeeds or raises.
    """
    path = Path(path)
    suffix = _archive_suffix(path)
    if suffix is None:
        raise SourceLoaderError(f"Not a supported archive: {path}")

    with tempfile.TemporaryDirectory(prefix="course_responses_") as tmp:
        try:
            shutil.unpack_archive(str(path), tmp)
        except (OSError, ValueError) as exc:
            raise SourceLoaderError(f"Could not expand archive {path}: {exc}") from exc
        logger.debug("Expanded %s into %s", path, tmp)
        yield Path(tmp)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def load_responses(
    source: Source,
    class_id: ClassFilter = None,
    max_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Materialize one raw response table from a table, file, directory or archive.

    Path sources:
      - responses.csv / any .csv or .tsv file -> read as one table
      - directory -> every class responses file beneath it, row-stacked
      - .zip / .tar[.gz|.bz2|.xz] -> expanded to a temporary directory,
        then read like a directory

    `class_id` (one id or several) restricts directory and archive sources to
    those class directories. `max_workers` > 1 reads class files in parallel.
    """
    workers = int(max_workers if max_workers is not None else LOADER_MAX_WORKERS)

    if isinstance(source, pd.DataFrame):
        if class_id is not None:
            logger.warning("class_id filter ignored for an in-memory response table")
        return source.copy()

    if not isinstance(source, (str, os.PathLike)):
        raise TypeError(
            f"Response source must be a DataFrame or a path, got {type(source).__name__}"
        )

    path = Path(source)
    if not path.exists():
        raise SourceLoaderError(f"Response source not found: {path}")

    if path.is_dir():
        return _load_directory(path, class_id, workers)

    if is_archive(path):
        with expanded_archive(path) as root:
            return _load_directory(root, class_id, workers)

    if is_tabular(path):
        if class_id is not None:
            logger.warning("class_id filter ignored for single response file %s", path)
        return read_response_file(path)

    raise SourceLoaderError(
        f"Unsupported response source {path}. Expected a directory, an archive "
        f"({', '.join(ARCHIVE_EXTENSIONS)}) or a file ({', '.join(TABULAR_EXTENSIONS)})."
    )
