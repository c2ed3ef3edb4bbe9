"""
sop_classes.py - Storage SOP classes the audit is prepared to judge.

The VR rules are tuned for single-frame and classic multi-frame image
objects.  Enhanced multi-frame objects keep most of their metadata inside
functional-group sequences that the validator does not recurse into, so
they are not on this list.
"""

from typing import Optional

from src.record import DecodedRecord

SOP_CLASS_UID_TAG = "00080016"

SUPPORTED_SOP_CLASSES: tuple[str, ...] = (
    "1.2.840.10008.5.1.4.1.1.1.1",      # Digital X-Ray Image - For Presentation
    "1.2.840.10008.5.1.4.1.1.1.1.1",    # Digital X-Ray Image - For Processing
    "1.2.840.10008.5.1.4.1.1.1.2",      # Digital Mammography X-Ray Image - For Presentation
    "1.2.840.10008.5.1.4.1.1.1.2.1",    # Digital Mammography X-Ray Image - For Processing
    "1.2.840.10008.5.1.4.1.1.2",        # CT Image
    "1.2.840.10008.5.1.4.1.1.3.1",      # Ultrasound Multi-frame Image
    "1.2.840.10008.5.1.4.1.1.4",        # MR Image
    "1.2.840.10008.5.1.4.1.1.4.2",      # MR Spectroscopy
    "1.2.840.10008.5.1.4.1.1.6.1",      # Ultrasound Image
    "1.2.840.10008.5.1.4.1.1.12.1",     # X-Ray Angiographic Image
    "1.2.840.10008.5.1.4.1.1.12.2",     # X-Ray Radiofluoroscopic Image
    "1.2.840.10008.5.1.4.1.1.13.1.1",   # X-Ray 3D Angiographic Image
    "1.2.840.10008.5.1.4.1.1.20",       # Nuclear Medicine Image
    "1.2.840.10008.5.1.4.1.1.128",      # Positron Emission Tomography Image
)


def supported_sop_classes() -> list[str]:
    return list(SUPPORTED_SOP_CLASSES)


def is_supported_sop_class(uid: Optional[str]) -> bool:
    return uid is not None and uid.strip() in SUPPORTED_SOP_CLASSES


def sop_class_of(record: DecodedRecord) -> Optional[str]:
    """SOP Class UID (0008,0016) of a decoded record, or None if missing."""
    field = record.get(SOP_CLASS_UID_TAG)
    if field is None or not field.value:
        return None
    return str(field.value[0])
