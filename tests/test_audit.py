"""Tests for src/audit.py."""

import json

import pydicom
import pytest
from pydicom.dataset import FileDataset
from pydicom.uid import ExplicitVRLittleEndian

from src.audit import AuditReport, FileAudit, audit_file, audit_folder
from src.vr_rules import ValidatorWarning, WarningLevel

CT_IMAGE = "1.2.840.10008.5.1.4.1.1.2"
ENHANCED_CT_IMAGE = "1.2.840.10008.5.1.4.1.1.2.1"


def _write_dicom(path: str, sop_class: str = CT_IMAGE, **attrs) -> None:
    """Write a minimal DICOM file that follows the anonymization policy."""
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID(sop_class)
    file_meta.MediaStorageSOPInstanceUID = pydicom.uid.generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset(path, {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = sop_class
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    ds.StudyDate = "19700101"
    ds.Modality = "CT"
    ds.PatientIdentityRemoved = "YES"
    ds.BurnedInAnnotation = "NO"

    for key, value in attrs.items():
        setattr(ds, key, value)

    ds.save_as(path)


class TestAuditFile:
    def test_clean_file(self, tmp_path):
        path = tmp_path / "clean.dcm"
        _write_dicom(str(path))
        result = audit_file(str(path))
        assert result.error is None
        assert not result.skipped
        assert result.sop_class_uid == CT_IMAGE
        assert result.worst_level is None

    def test_leaking_name(self, tmp_path):
        path = tmp_path / "leak.dcm"
        _write_dicom(str(path), PatientName="Doe^Jane")
        result = audit_file(str(path))
        assert result.worst_level == WarningLevel.FATAL
        assert result.warnings["00100010"][0].text.startswith("Doe^Jane")

    def test_burned_in_annotation(self, tmp_path):
        path = tmp_path / "burned.dcm"
        _write_dicom(str(path), BurnedInAnnotation="YES")
        result = audit_file(str(path))
        assert [w.level for w in result.warnings["00280301"]] == [WarningLevel.FATAL]

    def test_unsupported_sop_class_skipped(self, tmp_path):
        path = tmp_path / "enhanced.dcm"
        _write_dicom(str(path), sop_class=ENHANCED_CT_IMAGE, PatientName="Doe^Jane")
        result = audit_file(str(path))
        assert result.skipped
        assert result.warnings == {}

    def test_unsupported_sop_class_audited_on_request(self, tmp_path):
        path = tmp_path / "enhanced.dcm"
        _write_dicom(str(path), sop_class=ENHANCED_CT_IMAGE, PatientName="Doe^Jane")
        result = audit_file(str(path), skip_unsupported=False)
        assert not result.skipped
        assert result.worst_level == WarningLevel.FATAL

    def test_json_record(self, tmp_path):
        path = tmp_path / "record.json"
        path.write_text(json.dumps({
            "00080016": {"vr": "UI", "Value": [CT_IMAGE]},
            "00100010": {"vr": "PN", "Value": [{"Alphabetic": "Doe^Jane"}]},
        }))
        result = audit_file(str(path))
        assert result.worst_level == WarningLevel.FATAL

    def test_scalar_json_value_recorded_as_error(self, tmp_path):
        path = tmp_path / "record.json"
        path.write_text(json.dumps({
            "00080016": {"vr": "UI", "Value": [CT_IMAGE]},
            "00120062": {"vr": "CS", "Value": "NO"},
        }))
        result = audit_file(str(path))
        assert "Value must be a list" in result.error
        assert result.warnings == {}

    def test_unreadable_file_recorded(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[1, 2")
        result = audit_file(str(path))
        assert result.error is not None
        assert result.warnings == {}


class TestAuditFolder:
    def test_missing_folder_returns_empty_report(self):
        report = audit_folder(folder="/nonexistent/path")
        assert isinstance(report, AuditReport)
        assert report.total_files == 0

    def test_counts(self, tmp_path):
        _write_dicom(str(tmp_path / "a_clean.dcm"))
        _write_dicom(str(tmp_path / "b_leak.dcm"), PatientAge="054Y")
        _write_dicom(str(tmp_path / "c_enhanced.dcm"), sop_class=ENHANCED_CT_IMAGE)
        (tmp_path / "d_broken.json").write_text("{")
        (tmp_path / ".hidden").write_text("ignored")
        (tmp_path / "subdir").mkdir()

        report = audit_folder(folder=str(tmp_path), skip_unsupported=True)

        assert report.total_files == 4
        assert report.audited == 2
        assert report.skipped == 1
        assert report.failed == 1
        assert [r.filename for r in report.results] == [
            "a_clean.dcm", "b_leak.dcm", "c_enhanced.dcm", "d_broken.json",
        ]

    def test_max_files_limits_audit(self, tmp_path):
        for i in range(5):
            _write_dicom(str(tmp_path / f"scan{i}.dcm"))
        report = audit_folder(folder=str(tmp_path), max_files=2)
        assert report.total_files == 2

    def test_has_level(self, tmp_path):
        _write_dicom(str(tmp_path / "scan.dcm"), StudyDate="20230601")
        report = audit_folder(folder=str(tmp_path))
        assert report.has_level(WarningLevel.POSSIBLE_LEAK)
        assert not report.has_level(WarningLevel.FATAL)


class TestAuditReport:
    def _report(self):
        return AuditReport(
            folder="data/processed",
            total_files=2,
            audited=1,
            failed=1,
            results=[
                FileAudit(
                    filename="leak.dcm",
                    warnings={
                        "00100010": [ValidatorWarning(WarningLevel.FATAL, "name")],
                        "00100020": [ValidatorWarning(WarningLevel.CAUTION, "id")],
                    },
                ),
                FileAudit(filename="broken.dcm", error="not DICOM"),
            ],
        )

    def test_level_counts(self):
        counts = self._report().level_counts()
        assert counts == {WarningLevel.FATAL: 1, WarningLevel.CAUTION: 1}

    def test_summary_lists_failures(self):
        text = self._report().summary()
        assert "DE-IDENTIFICATION AUDIT SUMMARY" in text
        assert "broken.dcm: not DICOM" in text
        assert "FATAL" in text

    @pytest.mark.parametrize("level, expected", [(1, True), (2, True), (4, True)])
    def test_has_level(self, level, expected):
        assert self._report().has_level(level) is expected

    def test_empty_report_has_no_level(self):
        assert not AuditReport().has_level(WarningLevel.CAUTION)
