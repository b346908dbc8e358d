from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Default location the review app offers as a source (a download root,
# a single class directory, or an archive can all be entered instead)
DATA_DIR = Path(os.getenv("COURSE_RESPONSES_DATA_DIR", "").strip() or PROJECT_ROOT / "data")

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Course Response Processor"
APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------

# IANA zone applied to every datetime column. Exports carry no offset, so the
# zone decides how the wall-clock text is interpreted.
DEFAULT_TIME_ZONE = os.getenv("COURSE_RESPONSES_TIME_ZONE", "").strip() or "UTC"

# ---------------------------------------------------------------------------
# Source discovery
#
# Platform downloads are laid out as:
#   <root>/.../<class-subdir>/responses.csv
# and archives are compressed snapshots of the same tree.
# ---------------------------------------------------------------------------

RESPONSE_FILE_STEM = os.getenv("COURSE_RESPONSES_FILE_STEM", "").strip() or "responses"

# extension -> field separator
TABULAR_EXTENSIONS = {
    ".csv": ",",
    ".tsv": "\t",
}

# Longest suffixes first so ".tar.gz" wins over ".gz"-style partial matches
ARCHIVE_EXTENSIONS = (
    ".tar.gz",
    ".tar.bz2",
    ".tar.xz",
    ".tgz",
    ".tbz2",
    ".txz",
    ".tar",
    ".zip",
)

# 1 = read class files sequentially
LOADER_MAX_WORKERS = int(os.getenv("COURSE_RESPONSES_MAX_WORKERS", "").strip() or 1)

# ---------------------------------------------------------------------------
# Option resolution
# ---------------------------------------------------------------------------

OPTION_DELIMITER = "; "
