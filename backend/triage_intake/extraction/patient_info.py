"""Label-driven patient intake extraction from a call transcript."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import reduce
import re
from types import MappingProxyType
from typing import Mapping, cast

from ..core.types import PendingField
from .utils import normalize_field_value, strip_role_prefix

PATIENT_INFO_FIELDS: tuple[PendingField, ...] = ("name", "age", "gender", "symptoms")

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_FIELD_LABEL_RE = re.compile(r"^(name|age|gender|symptoms)\s*[:,-]?\s*(.*)$", re.IGNORECASE)


@dataclass(frozen=True)
class PatientInfo:
    """Structured intake record; an empty string means the field was not captured."""

    name: str = ""
    age: str = ""
    gender: str = ""
    symptoms: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "age": self.age,
            "gender": self.gender,
            "symptoms": self.symptoms,
        }


@dataclass(frozen=True)
class _FoldState:
    values: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    pending: PendingField | None = None

    def commit(self, key: PendingField, raw: str) -> _FoldState:
        values = {**self.values, key: normalize_field_value(key, raw)}
        return _FoldState(values=MappingProxyType(values), pending=None)


def _step(state: _FoldState, line: str) -> _FoldState:
    match = _FIELD_LABEL_RE.match(line)
    if match:
        key = cast(PendingField, match.group(1).lower())
        rest = match.group(2).strip()
        if rest:
            return state.commit(key, rest)
        # Label without a value: expect it on the next line.
        return replace(state, pending=key)

    if state.pending is not None:
        return state.commit(state.pending, line)

    return state


def _transcript_lines(text: str) -> list[str]:
    lines = (strip_role_prefix(line) for line in _LINE_SPLIT_RE.split(text or ""))
    return [line for line in lines if line]


def extract_patient_info(text: str) -> PatientInfo:
    """
    Extract name, age, gender and symptoms from transcript text.

    Single left-to-right pass: ``Name: James`` commits immediately, a bare
    label such as ``Age,`` leaves the field pending and the next non-empty
    line becomes its value. Unlabelled lines are ignored, so the result is
    always well-formed even for unstructured input.
    """
    final_state = reduce(_step, _transcript_lines(text), _FoldState())
    return PatientInfo(**{key: final_state.values.get(key, "") for key in PATIENT_INFO_FIELDS})
