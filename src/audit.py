"""
audit.py - Batch de-identification audit over a folder of DICOM files.

Reads every file in a folder (DICOM, or DICOM JSON when the name ends in
``.json``), decodes it into a record, checks the SOP class against the
supported list and runs the validator.  Nothing is written back: the
output is an AuditReport that callers print, store or gate on.

Unreadable files are recorded as failures and the batch carries on.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Optional

from src.config import CONFIG
from src.record import load_record
from src.sop_classes import is_supported_sop_class, sop_class_of
from src.validator import WarningReport, count_by_level, validate_record, worst_level
from src.vr_rules import WarningLevel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class FileAudit:
    """Outcome of auditing a single file."""
    filename: str
    sop_class_uid: Optional[str] = None
    warnings: WarningReport = field(default_factory=dict)
    skipped: bool = False
    error: Optional[str] = None

    @property
    def worst_level(self) -> Optional[WarningLevel]:
        return worst_level(self.warnings)


@dataclass
class AuditReport:
    """Aggregate report produced at the end of a folder audit."""
    folder: str = ""
    total_files: int = 0
    audited: int = 0
    skipped: int = 0
    failed: int = 0
    elapsed_s: float = 0.0
    results: list[FileAudit] = field(default_factory=list)

    def level_counts(self) -> dict[WarningLevel, int]:
        totals: dict[WarningLevel, int] = {}
        for r in self.results:
            for level, n in count_by_level(r.warnings).items():
                totals[level] = totals.get(level, 0) + n
        return totals

    def has_level(self, level: int) -> bool:
        """True if any file has a warning at *level* or more severe."""
        return any(
            r.worst_level is not None and r.worst_level <= level
            for r in self.results
        )

    def summary(self) -> str:
        counts = self.level_counts()
        lines = [
            "=" * 50,
            "DE-IDENTIFICATION AUDIT SUMMARY",
            "=" * 50,
            f"Folder               : {self.folder}",
            f"Total files found    : {self.total_files}",
            f"Audited              : {self.audited}",
            f"Skipped (unsupported): {self.skipped}",
            f"Failed to read       : {self.failed}",
            f"Total time           : {self.elapsed_s:.2f}s",
        ]
        for level in WarningLevel:
            lines.append(f"Level {level.value} {level.name:<14}: {counts.get(level, 0)}")
        if self.failed > 0:
            lines.append("\nFailed files:")
            for r in self.results:
                if r.error is not None:
                    lines.append(f"  - {r.filename}: {r.error}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Single file
# ---------------------------------------------------------------------------

def audit_file(path: str, skip_unsupported: bool = True) -> FileAudit:
    """
    Decode and validate one file.

    Parameters
    ----------
    path : str
        DICOM file, or DICOM JSON document ending in ``.json``.
    skip_unsupported : bool
        Leave records whose SOP class is not supported unvalidated.

    Returns
    -------
    FileAudit
        ``error`` is set (and ``warnings`` empty) if the file was unreadable.
    """
    result = FileAudit(filename=os.path.basename(path))

    try:
        record = load_record(path)
    except Exception as exc:
        result.error = str(exc)
        logger.exception("Could not read %s: %s", path, exc)
        return result

    result.sop_class_uid = sop_class_of(record)
    if skip_unsupported and not is_supported_sop_class(result.sop_class_uid):
        result.skipped = True
        logger.warning(
            "Skipping %s: SOP class %s is not supported.",
            result.filename, result.sop_class_uid,
        )
        return result

    result.warnings = validate_record(record)
    return result


# ---------------------------------------------------------------------------
# Folder
# ---------------------------------------------------------------------------

def audit_folder(
    folder: Optional[str] = None,
    max_files: Optional[int] = None,
    skip_unsupported: Optional[bool] = None,
) -> AuditReport:
    """
    Audit all files in *folder*.

    Parameters
    ----------
    folder : str, optional
        Directory to scan.  Defaults to config value.
    max_files : int, optional
        Cap on the number of files to audit.  None = audit all.
    skip_unsupported : bool, optional
        Defaults to config value.

    Returns
    -------
    AuditReport
        Summary of the run; empty if *folder* does not exist.
    """
    folder = folder or CONFIG["paths"]["input_folder"]
    max_files = max_files if max_files is not None else CONFIG["audit"]["max_files"]
    if skip_unsupported is None:
        skip_unsupported = CONFIG["audit"]["skip_unsupported"]

    report = AuditReport(folder=folder)
    start = time.time()

    if not os.path.isdir(folder):
        logger.error("Input folder not found: %s", folder)
        return report

    files = sorted(f for f in os.listdir(folder) if not f.startswith("."))
    files = [f for f in files if os.path.isfile(os.path.join(folder, f))]
    if max_files is not None:
        files = files[:max_files]

    report.total_files = len(files)
    logger.info("Starting audit: %d files in %s.", report.total_files, folder)

    for filename in files:
        result = audit_file(os.path.join(folder, filename), skip_unsupported=skip_unsupported)
        if result.error is not None:
            report.failed += 1
        elif result.skipped:
            report.skipped += 1
        else:
            report.audited += 1
        report.results.append(result)

    report.elapsed_s = time.time() - start
    logger.info(
        "Audit finished: %d audited, %d skipped, %d failed.",
        report.audited, report.skipped, report.failed,
    )
    return report
