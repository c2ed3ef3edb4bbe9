"""
validator.py - Build a warning report for one decoded DICOM record.

For every attribute the declared VR selects a routine from the rule table
(src.vr_rules).  Attributes whose VR has no routine are left out of the
report entirely; that is not an error.  After the generic check, a few
attributes that record the outcome of de-identification are checked
against their expected values and, when they show a problem, their slot
is replaced by a single fatal warning.

Nothing here keeps state between calls: the same record always produces
the same report.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from src.record import DecodedRecord, FieldRecord
from src.vr_rules import VR_RULES, Rule, ValidatorWarning, WarningLevel

logger = logging.getLogger(__name__)

WarningReport = dict[str, list[ValidatorWarning]]

# Attributes with a de-identification policy of their own.
BURNED_IN_ANNOTATION = "00280301"
RECOGNIZABLE_VISUAL_FEATURES = "00280302"
PATIENT_IDENTITY_REMOVED = "00120062"


@dataclass(frozen=True)
class PolicyOverride:
    """Replace the warnings of *tag* with *warning* if any value triggers it."""
    tag: str
    trigger: Callable[[object], bool]
    warning: ValidatorWarning

    def applies(self, field: FieldRecord) -> bool:
        return any(self.trigger(value) for value in field.value)


POLICY_OVERRIDES: tuple[PolicyOverride, ...] = (
    PolicyOverride(
        BURNED_IN_ANNOTATION,
        lambda value: value != "NO",
        ValidatorWarning(
            WarningLevel.FATAL,
            "Image contains burnt-in annotations which cannot be anonymized.",
        ),
    ),
    PolicyOverride(
        RECOGNIZABLE_VISUAL_FEATURES,
        lambda value: value == "YES",
        ValidatorWarning(
            WarningLevel.FATAL,
            "Image contains recognizable visual features which cannot be anonymized.",
        ),
    ),
    PolicyOverride(
        PATIENT_IDENTITY_REMOVED,
        lambda value: value == "NO",
        ValidatorWarning(WarningLevel.FATAL, "Image has not had personal data removed."),
    ),
)


def validate_record(
    record: DecodedRecord,
    rules: Mapping[Optional[str], Rule] = VR_RULES,
    overrides: tuple[PolicyOverride, ...] = POLICY_OVERRIDES,
) -> WarningReport:
    """
    Check every attribute of *record* and collect the warnings per tag.

    Parameters
    ----------
    record : DecodedRecord
        Decoded record, tag string -> FieldRecord.  Not modified.
    rules : Mapping
        VR code (or None for an absent VR) -> routine.
    overrides : tuple of PolicyOverride
        Tag-specific checks applied after the VR routine, in order.

    Returns
    -------
    dict
        Tag -> list of ValidatorWarning.  Tags whose VR has no routine are
        absent; tags that passed are present with an empty list.
    """
    report: WarningReport = {}

    for tag, field in record.items():
        rule = rules.get(field.vr)
        if rule is None:
            logger.debug("No rule for VR %r of tag %s; skipped.", field.vr, tag)
            continue

        report[tag] = rule(field)

        # Overrides only run for attributes the rule table recognised.
        for override in overrides:
            if override.tag == tag and override.applies(field):
                logger.debug("Policy override hit for tag %s.", tag)
                report[tag] = [override.warning]

    return report


def count_by_level(report: WarningReport) -> dict[WarningLevel, int]:
    """Number of warnings at each level (levels with no warnings are omitted)."""
    counts: dict[WarningLevel, int] = {}
    for warnings in report.values():
        for w in warnings:
            counts[w.level] = counts.get(w.level, 0) + 1
    return counts


def worst_level(report: WarningReport) -> Optional[WarningLevel]:
    """Most severe (lowest) level present in *report*, or None if clean."""
    levels = [w.level for warnings in report.values() for w in warnings]
    return min(levels) if levels else None
