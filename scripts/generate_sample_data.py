"""
generate_sample_data.py - Create synthetic "anonymized" DICOM files for the audit demo.

Writes a handful of small CT files to data/processed/.  Some follow the
anonymization policy exactly, others leak something a real pipeline
could miss (a surviving name, an unreplaced date, burnt-in annotations),
so the audit has something to report.

Usage
-----
    python scripts/generate_sample_data.py

After running, try:
    python scripts/audit_phi.py
"""

import os
import sys

import numpy as np
import pydicom
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian

# Make sure repo root is on the path when run as a script
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from src.config import CONFIG  # noqa: E402
from src.vr_rules import SENTINEL_DATE  # noqa: E402

OUTPUT_FOLDER = os.path.join(_REPO_ROOT, CONFIG["paths"]["input_folder"])

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"
ENHANCED_CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2.1"


# ---------------------------------------------------------------------------
# Sample profiles: attribute overrides applied on top of a compliant file
# ---------------------------------------------------------------------------
_SAMPLE_PROFILES = [
    # (filename_stem, overrides, note)
    ("clean_01", {}, "policy applied"),
    ("clean_02", {}, "policy applied"),
    ("name_leak", {"PatientName": "Doe^Jane"}, "patient name survived"),
    ("age_leak", {"PatientAge": "054Y"}, "patient age survived"),
    ("date_leak", {"StudyDate": "20230601"}, "study date not replaced"),
    ("burned_in", {"BurnedInAnnotation": "YES"}, "burnt-in annotations"),
    ("not_deidentified", {"PatientIdentityRemoved": "NO"}, "identity not removed"),
    ("enhanced_ct", {"SOPClassUID": ENHANCED_CT_IMAGE_STORAGE}, "unsupported SOP class"),
]


def _make_dicom(path: str, overrides: dict, size: int = 16, seed: int = 42) -> None:
    """Write a single synthetic DICOM file that follows the policy, then apply *overrides*."""
    rng = np.random.default_rng(seed)
    pixels = rng.normal(1000, 150, size=(size, size)).clip(0, 4095).astype(np.uint16)

    sop_class = overrides.get("SOPClassUID", CT_IMAGE_STORAGE)

    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID(sop_class)
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)

    # --- Identity, as left by the anonymizer ---
    ds.SOPClassUID = sop_class
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.PatientName = ""
    ds.PatientID = "ANON0001"
    ds.PatientIdentityRemoved = "YES"
    ds.BurnedInAnnotation = "NO"
    ds.RecognizableVisualFeatures = "NO"

    # --- Dates shifted to the policy sentinel ---
    ds.StudyDate = SENTINEL_DATE
    ds.ContentDate = SENTINEL_DATE
    ds.StudyTime = "000000"

    # --- Acquisition metadata ---
    ds.Modality = "CT"
    ds.RescaleSlope = "1"
    ds.RescaleIntercept = "-1024"

    # --- Pixel data ---
    ds.Rows = size
    ds.Columns = size
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.PixelRepresentation = 0
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelData = pixels.tobytes()

    for keyword, value in overrides.items():
        setattr(ds, keyword, value)

    ds.save_as(path)


def generate(output_folder: str = OUTPUT_FOLDER) -> None:
    """Generate all synthetic DICOM files into *output_folder*."""
    os.makedirs(output_folder, exist_ok=True)

    print(f"Writing {len(_SAMPLE_PROFILES)} synthetic DICOM files to: {output_folder}")
    print("-" * 60)

    for i, (stem, overrides, note) in enumerate(_SAMPLE_PROFILES, start=1):
        filename = f"{stem}.dcm"
        _make_dicom(os.path.join(output_folder, filename), overrides, seed=42 + i)
        print(f"  [{i:02d}/{len(_SAMPLE_PROFILES)}] {filename}  ({note})")

    print("-" * 60)
    print("Done.  Audit them with:")
    print("  python scripts/audit_phi.py")


if __name__ == "__main__":
    generate()
