"""
record.py - Decoded metadata records handed to the validator.

A decoded record maps a tag string (``"00100010"``) to a FieldRecord
holding the declared VR and the tuple of values.  This is the shape of the
DICOM JSON model (PS3.18 Annex F), so records can be produced either from a
pydicom Dataset or from a JSON document.

Only the top level is decoded.  Sequence items are kept as opaque entries;
the validator does not look inside them.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pydicom
from pydicom.dataelem import DataElement
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue

from src.tag_dictionary import format_tag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRecord:
    """VR code plus values of a single attribute.  ``vr`` is None if absent."""
    vr: Optional[str]
    value: tuple = ()


DecodedRecord = Mapping[str, FieldRecord]


# ---------------------------------------------------------------------------
# pydicom Dataset -> record
# ---------------------------------------------------------------------------

def _convert_entry(vr: Optional[str], entry: Any) -> Any:
    if vr == "AT" and isinstance(entry, int):
        return format_tag(entry)
    # PersonName, DSfloat and IS render back to their original text
    if vr in ("PN", "DS", "IS") and not isinstance(entry, (str, bytes)):
        return str(entry)
    return entry


def _element_values(elem: DataElement) -> tuple:
    vr = str(elem.VR) if elem.VR else None
    if vr == "SQ":
        return tuple(elem.value or ())
    if elem.value is None or elem.VM == 0:
        return ()
    if isinstance(elem.value, (MultiValue, list, tuple)):
        return tuple(_convert_entry(vr, v) for v in elem.value)
    return (_convert_entry(vr, elem.value),)


def record_from_dataset(ds: Dataset) -> dict[str, FieldRecord]:
    """
    Build a decoded record from the top-level elements of *ds*.

    File meta information (group 0002) is not part of the dataset body
    and is therefore not included.
    """
    record: dict[str, FieldRecord] = {}
    for elem in ds:
        vr = str(elem.VR) if elem.VR else None
        record[format_tag(elem.tag)] = FieldRecord(vr=vr, value=_element_values(elem))
    return record


# ---------------------------------------------------------------------------
# DICOM JSON model -> record
# ---------------------------------------------------------------------------

def record_from_json(obj: Mapping[str, Any]) -> dict[str, FieldRecord]:
    """
    Build a decoded record from a DICOM JSON model object.

    Parameters
    ----------
    obj : Mapping
        ``{"00100010": {"vr": "PN", "Value": [{"Alphabetic": "Doe^Jane"}]}}``

    Returns
    -------
    dict
        Tag string -> FieldRecord.  A missing ``vr`` becomes ``None``;
        ``InlineBinary`` and ``BulkDataURI`` payloads become one opaque entry.

    Raises
    ------
    ValueError
        If *obj* or one of its attributes is not a JSON object, or a
        ``Value`` is not a list.
    """
    if not isinstance(obj, Mapping):
        raise ValueError("DICOM JSON record must be an object keyed by tag")

    record: dict[str, FieldRecord] = {}
    for tag, attr in obj.items():
        if not isinstance(attr, Mapping):
            raise ValueError(f"Attribute {tag} is not a JSON object")
        if "Value" in attr:
            if attr["Value"] is not None and not isinstance(attr["Value"], list):
                raise ValueError(f"Attribute {tag} Value must be a list")
            value = tuple(attr["Value"] or ())
        elif "InlineBinary" in attr:
            value = (attr["InlineBinary"],)
        elif "BulkDataURI" in attr:
            value = (attr["BulkDataURI"],)
        else:
            value = ()
        record[tag.upper()] = FieldRecord(vr=attr.get("vr"), value=value)
    return record


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------

def load_record(path: str) -> dict[str, FieldRecord]:
    """
    Read a DICOM file (or a ``.json`` DICOM JSON document) into a record.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    pydicom.errors.InvalidDicomError
        If the file cannot be read as DICOM.
    json.JSONDecodeError, ValueError
        If a ``.json`` file is not a valid DICOM JSON object.
    """
    if os.path.splitext(path)[1].lower() == ".json":
        with open(path, "r", encoding="utf-8") as f:
            return record_from_json(json.load(f))

    ds = pydicom.dcmread(path, force=True)
    record = record_from_dataset(ds)
    logger.debug("Decoded %d attributes from %s.", len(record), path)
    return record
