"""
Normalize exported course survey/quiz responses into one typed table.

    from course_responses import process

    result = process("downloads/", class_id=["class_1"], time_zone="UTC")
    result.data            # processed responses
    result.option_lookup   # multiple-choice option texts per question
"""
from __future__ import annotations

from course_responses.core.coercion import coerce_types
from course_responses.core.options import resolve_options
from course_responses.core.pipeline import process
from course_responses.core.source_loader import SourceLoaderError, load_responses
from course_responses.core.table import ResponseDataWarning, ResponseSchemaError, ResponseTable
from course_responses.core.validation import validate

__all__ = [
    "ResponseDataWarning",
    "ResponseSchemaError",
    "ResponseTable",
    "SourceLoaderError",
    "coerce_types",
    "load_responses",
    "process",
    "resolve_options",
    "validate",
]
