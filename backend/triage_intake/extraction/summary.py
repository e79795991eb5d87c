"""Rule-based summary extraction from a call transcript."""
import re

from .utils import strip_role_prefix

FALLBACK_SUMMARY_LINES = 12

# Lazy capture up to the first blank line (two or more newlines) or end of text.
_SUMMARY_BLOCK_RE = re.compile(r"Summary:\s*(.*?)(?=\n{2,}|\Z)", re.IGNORECASE | re.DOTALL)
_INTAKE_SUMMARY_BLOCK_RE = re.compile(
    r"Patient Intake Summary:\s*(.*?)(?=\n{2,}|\Z)",
    re.IGNORECASE | re.DOTALL,
)


def extract_summary(text: str) -> str:
    """
    Derive a summary string from transcript text.

    An explicit ``Summary:`` block wins, then a ``Patient Intake Summary:``
    block. Without either, the last twelve non-empty lines (role prefixes
    removed) are joined with single spaces.

    :param text: Transcript text, one ``role: content`` per line
    :return: Summary, empty only when the transcript has no content
    """
    cleaned = (text or "").replace("\r", "")

    for pattern in (_SUMMARY_BLOCK_RE, _INTAKE_SUMMARY_BLOCK_RE):
        match = pattern.search(cleaned)
        if match and match.group(1):
            return match.group(1).strip()

    lines = [strip_role_prefix(line) for line in cleaned.split("\n")]
    lines = [line for line in lines if line]
    return " ".join(lines[-FALLBACK_SUMMARY_LINES:])
