"""Shared normalization helpers for transcript extraction."""
import re

from ..core.types import PendingField

_ROLE_PREFIX_RE = re.compile(r"^\s*(?:assistant|user|patient)\s*:\s*", re.IGNORECASE)
_TRAILING_PUNCTUATION_RE = re.compile(r"[.,;]+$")
_FILLER_RE = re.compile(r"not\s+shared|unknown|n/a", re.IGNORECASE)
_AGE_DIGITS_RE = re.compile(r"[0-9]{1,3}")


def strip_role_prefix(line: str) -> str:
    """Remove a leading ``assistant:`` / ``user:`` / ``patient:`` label and trim."""
    return _ROLE_PREFIX_RE.sub("", line, count=1).strip()


def normalize_field_value(field: PendingField, raw: str) -> str:
    """
    Clean a captured value before it is committed to a patient-info field.

    Trailing ``.``, ``,`` and ``;`` runs are dropped, values mentioning a
    "no data" filler phrase collapse to an empty string, and ``age`` keeps
    only its first run of 1-3 digits when there is one.
    """
    value = (raw or "").strip()
    value = _TRAILING_PUNCTUATION_RE.sub("", value).strip()
    if _FILLER_RE.search(value):
        value = ""
    if field == "age":
        digits = _AGE_DIGITS_RE.search(value)
        if digits:
            value = digits.group(0)
    return value
