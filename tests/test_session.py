"""Tests for assessment session state."""

from datetime import date

import pytest

from pji_src.config import Config
from pji_src.models import PathogenCategory, PatientDemographics
from pji_src.rules.schemas import DiagnosisStatus, SymptomFindings, SynovialFluidAnalysis
from pji_src.session import AssessmentSession, default_demographics
from pji_src.treatment import recommend_treatment


@pytest.fixture
def chronic_patient():
    return PatientDemographics(
        id="1",
        name="Test Patient",
        mrn="MRN001",
        height_cm=170.0,
        weight_kg=70.0,
        surgery_date=date(2023, 1, 1),
        symptom_date=date(2023, 9, 1),
    )


@pytest.fixture
def session(chronic_patient):
    return AssessmentSession.start(demographics=chronic_patient)


class TestSessionStart:
    """Opening a session."""

    def test_blank_session_is_evaluated(self):
        session = AssessmentSession.start()

        assert session.diagnosis.status == DiagnosisStatus.NOT_INFECTED
        assert session.diagnosis.probability == 5
        assert len(session.findings.culture_samples) == 5
        assert len(session.labs) == 4

    def test_default_demographics_dated_today(self):
        demographics = default_demographics(today=date(2024, 2, 1))

        assert demographics.surgery_date == date(2024, 2, 1)
        assert demographics.symptom_date == date(2024, 2, 1)
        assert demographics.bmi == 22.9

    def test_default_treatment(self, session):
        assert session.treatment.pathogen == PathogenCategory.MRSA


class TestSessionUpdates:
    """Every findings or demographics change re-runs the engine."""

    def test_culture_update_reevaluates(self, session):
        findings = (
            session.findings
            .with_culture_result(1, "positive", "Staph aureus")
            .with_culture_result(2, "positive", "Staph aureus")
        )

        updated = session.with_findings(findings)

        assert updated.diagnosis.status == DiagnosisStatus.INFECTED
        assert updated.diagnosis.probability == 95
        assert session.diagnosis.status == DiagnosisStatus.NOT_INFECTED

    def test_demographics_change_shifts_thresholds(self, session, chronic_patient):
        fluid = SynovialFluidAnalysis(wbc_count=9000)
        findings = session.findings
        findings = type(findings)(
            culture_samples=findings.culture_samples,
            laboratory_panels=findings.laboratory_panels,
            synovial_fluid=fluid,
        )
        session = session.with_findings(findings)
        assert session.diagnosis.score == 3

        acute_patient = PatientDemographics.from_dict(
            {**chronic_patient.to_dict(), "symptom_date": "2023-01-10"}
        )
        session = session.with_demographics(acute_patient)

        assert session.context.is_acute_infection is True
        assert session.diagnosis.score == 0

    def test_configured_window_reaches_engine(self, session, monkeypatch):
        monkeypatch.setattr(Config, "ACUTE_WINDOW_DAYS", 365)
        findings = session.findings
        findings = type(findings)(
            culture_samples=findings.culture_samples,
            synovial_fluid=SynovialFluidAnalysis(wbc_count=9000),
        )

        updated = session.with_findings(findings)

        assert updated.context.is_acute_infection is True
        assert updated.diagnosis.score == 0

    def test_symptoms_in_summary(self, session):
        findings = session.findings
        findings = type(findings)(symptoms=SymptomFindings(fever=True, drainage=True))

        assert session.with_findings(findings).summary()["symptoms"] == ["fever", "drainage"]

    def test_lab_value_does_not_touch_diagnosis(self, session):
        updated = session.with_lab_value("Day 1", "crp", 120.0)

        assert updated.labs[1].crp == 120.0
        assert updated.diagnosis == session.diagnosis

    def test_with_treatment(self, session):
        plan = recommend_treatment(PathogenCategory.MSSA)
        assert session.with_treatment(plan).treatment.iv_drug == "Cefazolin"

    def test_sessions_are_immutable(self, session):
        with pytest.raises(AttributeError):
            session.findings = None


class TestSummary:
    def test_summary_contents(self, session):
        findings = session.findings.with_lab_result("biochemistry", "CRP", "48")
        session = session.with_findings(findings).with_lab_value("Day 3", "esr", 44.0)

        summary = session.summary()

        assert summary["patient"]["mrn"] == "MRN001"
        assert summary["context"] == {"is_acute_infection": False}
        assert summary["diagnosis"]["score"] == 2
        assert summary["symptoms"] == []
        assert summary["abnormal_results"] == [
            {"panel": "biochemistry", "test": "CRP", "result": "48", "flag": "H"},
        ]
        assert summary["elevated_markers"] == [{"day": "Day 3", "marker": "esr", "value": 44.0}]
        assert summary["treatment"]["iv_drug"] == "Daptomycin"
