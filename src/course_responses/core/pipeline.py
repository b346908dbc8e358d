from __future__ import annotations

import logging
from typing import Optional

from course_responses.config import DEFAULT_TIME_ZONE
from course_responses.core.coercion import coerce_types
from course_responses.core.options import resolve_options
from course_responses.core.source_loader import ClassFilter, Source, load_responses
from course_responses.core.table import ResponseTable
from course_responses.core.validation import validate

logger = logging.getLogger(__name__)


def process(
    source: Source,
    class_id: ClassFilter = None,
    time_zone: str = DEFAULT_TIME_ZONE,
    max_workers: Optional[int] = None,
) -> ResponseTable:
    """
    Load raw responses and return them validated, typed and option-resolved.

    `source` is a DataFrame or a path to a response file, a class directory,
    a download root, or an archive of one. `class_id` limits directory and
    archive sources to the named class directories.

    The three stages do not depend on each other's output, so
    validate/coerce_types/resolve_options give the same result in any order;
    this entry point runs them in that order.
    """
    raw = load_responses(source, class_id=class_id, max_workers=max_workers)
    logger.info("Processing %d raw response rows", len(raw))

    checked = validate(raw)
    typed = coerce_types(checked, time_zone=time_zone)
    return resolve_options(typed)
