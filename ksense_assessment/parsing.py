from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

_NUMBER_RE = re.compile(r"[-+]?\d+(?:\.\d+)?")
_DIGITS_RE = re.compile(r"\d+")

SYSTOLIC_KEYS = ("systolic", "sys", "s")
DIASTOLIC_KEYS = ("diastolic", "dia", "d")


@dataclass(frozen=True)
class LooseNumber:
    value: Optional[float]
    valid: bool


@dataclass(frozen=True)
class BloodPressureReading:
    systolic: Optional[int]
    diastolic: Optional[int]
    valid: bool


INVALID_NUMBER = LooseNumber(None, False)
INVALID_BP = BloodPressureReading(None, None, False)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_number(value: Any) -> LooseNumber:
    """Pull a number out of loosely typed input.

    Numbers pass through; strings yield their first numeric run, so
    ``"98.6F"`` gives 98.6 and ``"-1 units"`` gives -1. Anything else
    (None, bools, containers) is invalid.
    """
    if _is_number(value):
        try:
            f = float(value)
        except OverflowError:
            return INVALID_NUMBER
        if math.isfinite(f):
            return LooseNumber(value, True)
        return INVALID_NUMBER
    if not isinstance(value, str):
        return INVALID_NUMBER

    s = value.strip()
    if not s:
        return INVALID_NUMBER
    match = _NUMBER_RE.search(s)
    if not match:
        return INVALID_NUMBER

    n = float(match.group(0))
    if not math.isfinite(n):
        return INVALID_NUMBER
    return LooseNumber(n, True)


def _reading(systolic_raw: Any, diastolic_raw: Any) -> BloodPressureReading:
    s = parse_number(systolic_raw)
    d = parse_number(diastolic_raw)
    if not (s.valid and d.valid):
        return INVALID_BP
    return BloodPressureReading(math.trunc(s.value), math.trunc(d.value), True)


def _first_present(mapping: Mapping, keys) -> Any:
    for key in keys:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


def parse_bp(value: Any) -> BloodPressureReading:
    if value is None or value == "":
        return INVALID_BP

    # [120, 80] / (120, 80)
    if isinstance(value, (list, tuple)):
        if len(value) >= 2:
            return _reading(value[0], value[1])
        return INVALID_BP

    # {"systolic": 120, "diastolic": 80}; one alias present is enough to commit
    if isinstance(value, Mapping):
        if any(k in value for k in SYSTOLIC_KEYS + DIASTOLIC_KEYS):
            return _reading(_first_present(value, SYSTOLIC_KEYS), _first_present(value, DIASTOLIC_KEYS))
        return INVALID_BP

    if not (isinstance(value, str) or _is_number(value)):
        return INVALID_BP

    parts = str(value).strip().split("/")
    if len(parts) != 2:
        return INVALID_BP
    left, right = parts[0].strip(), parts[1].strip()
    if not left or not right:
        return INVALID_BP

    s_match = _DIGITS_RE.search(left)
    d_match = _DIGITS_RE.search(right)
    if not s_match or not d_match:
        return INVALID_BP
    try:
        return BloodPressureReading(int(s_match.group(0)), int(d_match.group(0)), True)
    except ValueError:
        # digit run past the int conversion limit
        return INVALID_BP
