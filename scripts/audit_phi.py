"""
audit_phi.py - Check de-identified DICOM files for leftover PHI.

Scans a folder of DICOM (or DICOM JSON) files, runs every attribute
through the VR rules, and prints graded warnings per file.  Use this
after anonymization and before data leaves the site.

Exit status is 1 when any warning is at least as severe as
``audit.fail_level`` in config.yaml (default 1: definite leak), so the
script can gate a transfer job.

Usage
-----
    python scripts/audit_phi.py                          # scans data/processed/
    python scripts/audit_phi.py path/to/dicom/folder     # custom folder
"""

import logging
import os
import sys

# Ensure repo root is on sys.path
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from src.audit import AuditReport, audit_folder  # noqa: E402
from src.config import CONFIG  # noqa: E402
from src.tag_dictionary import tag_keyword  # noqa: E402
from src.vr_rules import WarningLevel  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)-8s %(message)s")
logger = logging.getLogger(__name__)

_MARKERS = {
    WarningLevel.FATAL: "✗ LEAK",
    WarningLevel.POSSIBLE_LEAK: "⚠ possible leak",
    WarningLevel.ABNORMALITY: "· abnormal",
    WarningLevel.CAUTION: "· caution",
}


def print_report(report: AuditReport) -> None:
    """Print a human-readable de-identification audit report."""
    print("=" * 60)
    print("DE-IDENTIFICATION AUDIT REPORT")
    print("=" * 60)

    for result in report.results:
        if result.error is not None:
            print(f"── {result.filename}: unreadable ({result.error})")
            continue
        if result.skipped:
            print(f"── {result.filename}: skipped (SOP class {result.sop_class_uid})")
            continue

        flagged = {tag: w for tag, w in result.warnings.items() if w}
        if not flagged:
            print(f"── {result.filename}: ✓ clean")
            continue

        print(f"── {result.filename}")
        for tag, warnings in sorted(flagged.items()):
            keyword = tag_keyword(tag) or "?"
            for w in warnings:
                print(f"  ({tag[:4]},{tag[4:]}) {keyword:<32} {_MARKERS[w.level]:<16} {w.text}")

    print()
    print(report.summary())
    print()


def main() -> None:
    if len(sys.argv) > 1:
        folder = sys.argv[1]
    else:
        folder = os.path.join(_REPO_ROOT, CONFIG["paths"]["input_folder"])

    report = audit_folder(folder)
    print_report(report)

    fail_level = CONFIG["audit"]["fail_level"]
    if report.has_level(fail_level):
        print(f"  ✗  Warnings at level {fail_level} or worse: do NOT release this data.")
        sys.exit(1)
    print(f"  ✓  No warnings at level {fail_level} or worse.")


if __name__ == "__main__":
    main()
