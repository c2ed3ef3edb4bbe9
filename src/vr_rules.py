"""
vr_rules.py - Per-VR validation routines for de-identified DICOM metadata.

Every DICOM attribute declares a Value Representation (VR) such as DA (date),
PN (person name) or UI (unique identifier).  Each VR has its own syntax and
its own privacy risk, so each gets its own routine here.  A routine receives
one FieldRecord and returns zero or more ValidatorWarnings; it never raises
on malformed content and never modifies its input.

Warning levels
--------------
    1  FATAL          definite privacy leak (names, ages)
    2  POSSIBLE_LEAK  value was not replaced by the anonymization policy
    3  ABNORMALITY    malformed value, no privacy implication
    4  CAUTION        VR that may carry personal data regardless of content

References
----------
- DICOM PS3.5 Section 6.2, Value Representation:
  https://dicom.nema.org/medical/dicom/current/output/html/part05.html#sect_6.2
"""

import logging
import string
from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional

from src.record import FieldRecord
from src.tag_dictionary import known_tags as dictionary_tags

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Warning types
# ---------------------------------------------------------------------------


class WarningLevel(IntEnum):
    FATAL = 1
    POSSIBLE_LEAK = 2
    ABNORMALITY = 3
    CAUTION = 4


@dataclass(frozen=True)
class ValidatorWarning:
    """One graded finding about a single attribute."""
    level: WarningLevel
    text: str


Rule = Callable[[FieldRecord], list[ValidatorWarning]]

# ---------------------------------------------------------------------------
# Policy constants
# ---------------------------------------------------------------------------

# Values the anonymization policy substitutes for real dates.
SENTINEL_DATE = "19700101"
SENTINEL_DATETIME = "19700101000000.000000"

MAX_DECIMAL_STRING_LENGTH = 16
MAX_SHORT_STRING_LENGTH = 16
MAX_SHORT_TEXT_LENGTH = 1024

# DS, IS and TM may contain digits, sign, decimal point and the exponent
# markers e/E.  Any other ASCII letter is rejected.
_NUMERIC_DISALLOWED = frozenset(string.ascii_letters) - {"e", "E"}
_LOWERCASE = frozenset(string.ascii_lowercase)
_LETTERS = frozenset(string.ascii_letters)

UNDEFINED_VR_TEXT = "VR field is undefined."


def _contains_any(value: str, charset: frozenset) -> bool:
    return any(ch in charset for ch in value)


def _as_text(value) -> Optional[str]:
    """Render scalar entries as text; structured entries yield None."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _strings(values: Iterable) -> Iterable[str]:
    return (v for v in values if isinstance(v, str))


# ---------------------------------------------------------------------------
# Routines
# ---------------------------------------------------------------------------

def _no_check(field: FieldRecord) -> list[ValidatorWarning]:
    """Used for AE, binary (O*), numeric (FL/FD/SL/SS/UL/US) and SQ VRs."""
    return []


def validate_age_string(field: FieldRecord) -> list[ValidatorWarning]:
    # Any surviving age is a leak, whatever its format.
    return [
        ValidatorWarning(WarningLevel.FATAL, "Anonymised data should not include age data.")
        for value in _strings(field.value)
        if value
    ]


def make_attribute_tag_rule(tags: frozenset) -> Rule:
    """Build the AT routine against a fixed set of known tag strings."""

    def validate_attribute_tag(field: FieldRecord) -> list[ValidatorWarning]:
        return [
            ValidatorWarning(
                WarningLevel.ABNORMALITY,
                f"{value} was not an expected attribute tag.",
            )
            for value in _strings(field.value)
            if value.upper() not in tags
        ]

    return validate_attribute_tag


def validate_code_string(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} is not an expected value for codestring",
        )
        for value in _strings(field.value)
        if _contains_any(value, _LOWERCASE)
    ]


def validate_date(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.POSSIBLE_LEAK,
            f"{value} is a date that has not been replaced with {SENTINEL_DATE} "
            "by the policy. This may include personal information",
        )
        for value in field.value
        if _as_text(value) != SENTINEL_DATE
    ]


def validate_decimal_string(field: FieldRecord) -> list[ValidatorWarning]:
    warnings: list[ValidatorWarning] = []
    for value in _strings(field.value):
        if _contains_any(value, _NUMERIC_DISALLOWED):
            warnings.append(ValidatorWarning(
                WarningLevel.ABNORMALITY,
                f"{value} is not an expected value for a decimal string",
            ))
        if len(value) > MAX_DECIMAL_STRING_LENGTH:
            warnings.append(ValidatorWarning(
                WarningLevel.ABNORMALITY,
                f"DecimalString VR is limited to {MAX_DECIMAL_STRING_LENGTH} chars "
                f"('{value}' is {len(value)} bytes).",
            ))
    return warnings


def validate_date_time(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.POSSIBLE_LEAK,
            f"{value} is a datetime that has not been replaced with {SENTINEL_DATETIME} "
            "by the policy. This may include personal information",
        )
        for value in field.value
        if _as_text(value) != SENTINEL_DATETIME
    ]


def validate_integer_string(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} is not an expected value for a integer string",
        )
        for value in _strings(field.value)
        if _contains_any(value, _NUMERIC_DISALLOWED)
    ]


def validate_long_string(field: FieldRecord) -> list[ValidatorWarning]:
    # Content is not inspected: LO is free text and may hold anything.
    return [
        ValidatorWarning(WarningLevel.CAUTION, "Long strings may include personal data.")
        for _ in field.value
    ]


def _person_name_text(value) -> Optional[str]:
    """
    Return the name carried by a PN entry, or None when it is empty.

    Entries are plain strings (``"Doe^Jane"``) or, in the DICOM JSON model,
    mappings of component groups (``{"Alphabetic": "Doe^Jane"}``).
    """
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        parts = [v for v in value.values() if isinstance(v, str) and v]
        return "=".join(parts) or None
    return None


def validate_person_name(field: FieldRecord) -> list[ValidatorWarning]:
    warnings: list[ValidatorWarning] = []
    for value in field.value:
        name = _person_name_text(value)
        if name is not None:
            warnings.append(ValidatorWarning(
                WarningLevel.FATAL,
                f"{name} is a person name and should not be included in Anonymised data",
            ))
    return warnings


def validate_short_string(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} has more data than expected for a short string.",
        )
        for value in _strings(field.value)
        if len(value.strip()) > MAX_SHORT_STRING_LENGTH
    ]


def validate_short_text(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} has more data than expected for a short text.",
        )
        for value in _strings(field.value)
        if len(value.strip()) > MAX_SHORT_TEXT_LENGTH
    ]


def validate_time(field: FieldRecord) -> list[ValidatorWarning]:
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} is not an expected value for a time string",
        )
        for value in _strings(field.value)
        if _contains_any(value, _NUMERIC_DISALLOWED)
    ]


def validate_uid(field: FieldRecord) -> list[ValidatorWarning]:
    # UIDs are digits and dots only.
    return [
        ValidatorWarning(
            WarningLevel.ABNORMALITY,
            f"{value} is not an expected value for a UID",
        )
        for value in _strings(field.value)
        if _contains_any(value, _LETTERS)
    ]


def validate_undefined(field: FieldRecord) -> list[ValidatorWarning]:
    return [ValidatorWarning(WarningLevel.ABNORMALITY, UNDEFINED_VR_TEXT)]


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

def build_rule_table(tags: Optional[Iterable[str]] = None) -> Mapping[Optional[str], Rule]:
    """
    Build the read-only VR -> routine mapping.

    Parameters
    ----------
    tags : iterable of str, optional
        Tag strings (``"00100010"``) accepted by the AT routine.  Defaults to
        every tag in pydicom's data dictionary.

    Returns
    -------
    Mapping
        Keys are VR codes plus ``None`` for an absent VR.
    """
    tag_set = dictionary_tags() if tags is None else frozenset(t.upper() for t in tags)

    table: dict[Optional[str], Rule] = {
        "AE": _no_check,
        "AS": validate_age_string,
        "AT": make_attribute_tag_rule(tag_set),
        "CS": validate_code_string,
        "DA": validate_date,
        "DS": validate_decimal_string,
        "DT": validate_date_time,
        "FL": _no_check,
        "FD": _no_check,
        "IS": validate_integer_string,
        "LO": validate_long_string,
        "OB": _no_check,
        "OD": _no_check,
        "OF": _no_check,
        "OW": _no_check,
        "PN": validate_person_name,
        "SH": validate_short_string,
        "SL": _no_check,
        "SQ": _no_check,
        "SS": _no_check,
        "ST": validate_short_text,
        "TM": validate_time,
        "UI": validate_uid,
        "UL": _no_check,
        "US": _no_check,
        None: validate_undefined,
    }
    logger.debug("Built VR rule table with %d entries (%d known tags).", len(table), len(tag_set))
    return MappingProxyType(table)


VR_RULES = build_rule_table()
