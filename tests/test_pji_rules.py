"""Tests for the PJI rules engine.

These tests validate the deterministic PJI criteria application.
Each test represents a clinical scenario with known expected outcome.
"""

import pytest

from pji_src.rules.pji_engine import PJIRulesEngine, evaluate_pji
from pji_src.rules.pji_criteria import (
    MinorCriterion,
    build_minor_criteria,
    probability_from_score,
)
from pji_src.rules.schemas import (
    AlphaDefensinResult,
    ClinicalFindings,
    CultureSample,
    CultureStatus,
    DiagnosisStatus,
    LabTestRow,
    LeukocyteEsteraseResult,
    MajorCriteria,
    PatientContext,
    SymptomFindings,
    SynovialFluidAnalysis,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def engine():
    """Create a rules engine for testing."""
    return PJIRulesEngine()


@pytest.fixture
def acute():
    return PatientContext(is_acute_infection=True)


@pytest.fixture
def chronic():
    return PatientContext(is_acute_infection=False)


@pytest.fixture
def blank_findings():
    """Blank form: five negative samples, empty panels."""
    return ClinicalFindings.default()


def serology_panel(crp: str = "", esr: str = "") -> dict:
    return {
        "hematology": [LabTestRow("ESR", result=esr, normal_range="< 10", unit="mm/hr")],
        "biochemistry": [LabTestRow("CRP", result=crp, normal_range="0 - 5", unit="mg/L")],
    }


# =============================================================================
# Tests: Major Criteria
# =============================================================================

class TestMajorCriteria:
    """Major criteria override all other scoring."""

    def test_sinus_tract_is_infected(self, engine, chronic):
        findings = ClinicalFindings(symptoms=SymptomFindings(sinus_tract=True))

        result = engine.evaluate(findings, chronic)

        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 100
        assert result.score == 99
        assert result.reasoning == ["Major criterion: sinus tract or two positive cultures"]

    def test_two_positive_cultures_flag_is_infected(self, engine, chronic):
        findings = ClinicalFindings(major_criteria=MajorCriteria(two_positive_cultures=True))

        result = engine.evaluate(findings, chronic)

        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 100

    def test_sinus_tract_ignores_everything_else(self, engine, acute):
        """Even with strongly negative minor data, sinus tract wins."""
        findings = ClinicalFindings(
            symptoms=SymptomFindings(sinus_tract=True),
            synovial_fluid=SynovialFluidAnalysis(
                wbc_count=100,
                pmn_percent=10,
                alpha_defensin=AlphaDefensinResult.NEGATIVE,
                leukocyte_esterase=LeukocyteEsteraseResult.NEGATIVE,
            ),
            culture_samples=[
                CultureSample(1, CultureStatus.POSITIVE, "Staph aureus"),
                CultureSample(2, CultureStatus.POSITIVE, "E. coli"),
            ],
        )

        result = engine.evaluate(findings, acute)

        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 100
        assert len(result.reasoning) == 1

    def test_major_checkbox_sinus_tract_alone_does_not_short_circuit(self, engine, chronic):
        """Only the sinus tract symptom is consulted by the override."""
        findings = ClinicalFindings(major_criteria=MajorCriteria(sinus_tract=True))

        result = engine.evaluate(findings, chronic)

        assert result.status == DiagnosisStatus.NOT_INFECTED
        assert result.score == 0


# =============================================================================
# Tests: Culture Consensus
# =============================================================================

class TestCultureConsensus:
    """Two or more positive cultures with organisms are diagnostic."""

    def test_two_distinct_organisms(self, engine, chronic, blank_findings):
        findings = (
            blank_findings
            .with_culture_result(1, "positive", "Staph aureus")
            .with_culture_result(2, "positive", "E. coli")
        )

        result = engine.evaluate(findings, chronic)

        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 95
        assert result.score == 99
        assert result.reasoning == [
            "Major criterion: 2 positive culture samples",
            "Organisms: Staph aureus, E. coli",
        ]

    def test_duplicate_organisms_listed_once(self, engine, chronic):
        findings = ClinicalFindings(culture_samples=[
            CultureSample(1, CultureStatus.POSITIVE, "S. epidermidis"),
            CultureSample(2, CultureStatus.POSITIVE, "S. epidermidis"),
            CultureSample(3, CultureStatus.POSITIVE, "Cutibacterium acnes"),
        ])

        result = engine.evaluate(findings, chronic)

        assert result.reasoning[0] == "Major criterion: 3 positive culture samples"
        assert result.reasoning[1] == "Organisms: S. epidermidis, Cutibacterium acnes"

    def test_organism_names_are_case_sensitive(self, engine, chronic):
        findings = ClinicalFindings(culture_samples=[
            CultureSample(1, CultureStatus.POSITIVE, "E. coli"),
            CultureSample(2, CultureStatus.POSITIVE, "e. coli"),
        ])

        result = engine.evaluate(findings, chronic)

        assert result.reasoning[1] == "Organisms: E. coli, e. coli"

    def test_single_positive_culture_falls_through(self, engine, chronic, blank_findings):
        findings = blank_findings.with_culture_result(3, "positive", "Staph aureus")

        result = engine.evaluate(findings, chronic)

        assert result.status == DiagnosisStatus.NOT_INFECTED
        assert result.score == 0
        assert result.reasoning == []

    def test_positive_without_organism_not_counted(self, engine, chronic):
        findings = ClinicalFindings(culture_samples=[
            CultureSample(1, CultureStatus.POSITIVE, "Staph aureus"),
            CultureSample(2, CultureStatus.POSITIVE, "   "),
            CultureSample(3, CultureStatus.POSITIVE, ""),
        ])

        result = engine.evaluate(findings, chronic)

        assert result.status != DiagnosisStatus.INFECTED


# =============================================================================
# Tests: Minor Criteria
# =============================================================================

class TestMinorCriteria:
    """Weighted minor criteria accumulation."""

    def test_elevated_crp_adds_two(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="25"))

        result = engine.evaluate(findings, chronic)

        assert result.score == 2
        assert result.reasoning == ["Elevated CRP (>10 mg/L)"]

    def test_elevated_esr_alone_counts_as_serology(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(esr="45"))

        result = engine.evaluate(findings, chronic)

        assert result.score == 2

    def test_serology_counted_once(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="50", esr="60"))

        result = engine.evaluate(findings, chronic)

        assert result.score == 2
        assert len(result.reasoning) == 1

    def test_normal_serology_adds_nothing(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="10", esr="30"))

        result = engine.evaluate(findings, chronic)

        assert result.score == 0

    def test_malformed_crp_is_skipped(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="pending"))

        result = engine.evaluate(findings, chronic)

        assert result.score == 0
        assert result.reasoning == []

    def test_synovial_crp_is_not_serum_crp(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels={
            "synovial_fluid": [LabTestRow("Synovial CRP", result="40", unit="mg/L")],
            "other": [LabTestRow("CRP (fluid)", result="40", unit="mg/L")],
        })

        result = engine.evaluate(findings, chronic)

        assert result.score == 0

    def test_wbc_threshold_acute(self, engine, acute):
        findings = ClinicalFindings(synovial_fluid=SynovialFluidAnalysis(wbc_count=9000))

        result = engine.evaluate(findings, acute)

        assert result.score == 0

    def test_wbc_threshold_chronic(self, engine, chronic):
        findings = ClinicalFindings(synovial_fluid=SynovialFluidAnalysis(wbc_count=9000))

        result = engine.evaluate(findings, chronic)

        assert result.score == 3
        assert result.reasoning == ["Synovial WBC > 3000"]

    def test_pmn_threshold_shifts_with_context(self, engine, acute, chronic):
        findings = ClinicalFindings(synovial_fluid=SynovialFluidAnalysis(pmn_percent=85))

        assert engine.evaluate(findings, acute).score == 0
        chronic_result = engine.evaluate(findings, chronic)
        assert chronic_result.score == 2
        assert chronic_result.reasoning == ["PMN% > 80%"]

    def test_threshold_is_exclusive(self, engine, chronic):
        findings = ClinicalFindings(
            synovial_fluid=SynovialFluidAnalysis(wbc_count=3000, pmn_percent=80)
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 0

    def test_alpha_defensin_positive(self, engine, chronic):
        findings = ClinicalFindings(
            synovial_fluid=SynovialFluidAnalysis(alpha_defensin=AlphaDefensinResult.POSITIVE)
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 3
        assert result.reasoning == ["Alpha-defensin positive"]

    def test_alpha_defensin_trace_not_counted(self, engine, chronic):
        findings = ClinicalFindings(
            synovial_fluid=SynovialFluidAnalysis(alpha_defensin=AlphaDefensinResult.TRACE)
        )

        assert engine.evaluate(findings, chronic).score == 0

    @pytest.mark.parametrize("reading,expected", [
        (LeukocyteEsteraseResult.NEGATIVE, 0),
        (LeukocyteEsteraseResult.ONE_PLUS, 0),
        (LeukocyteEsteraseResult.TWO_PLUS, 3),
        (LeukocyteEsteraseResult.THREE_PLUS, 3),
    ])
    def test_leukocyte_esterase(self, engine, chronic, reading, expected):
        findings = ClinicalFindings(
            synovial_fluid=SynovialFluidAnalysis(leukocyte_esterase=reading)
        )

        assert engine.evaluate(findings, chronic).score == expected

    def test_reasoning_follows_fixed_order(self, engine, chronic):
        findings = ClinicalFindings(
            laboratory_panels=serology_panel(crp="30"),
            synovial_fluid=SynovialFluidAnalysis(
                wbc_count=20000,
                pmn_percent=95,
                alpha_defensin=AlphaDefensinResult.POSITIVE,
                leukocyte_esterase=LeukocyteEsteraseResult.THREE_PLUS,
            ),
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 13
        assert result.reasoning == [
            "Elevated CRP (>10 mg/L)",
            "Synovial WBC > 3000",
            "PMN% > 80%",
            "Alpha-defensin positive",
            "Leukocyte esterase ++",
        ]
        assert result.probability == 99


# =============================================================================
# Tests: Status and Probability
# =============================================================================

class TestClassification:
    """Status buckets and the probability formula."""

    def test_empty_findings_never_fail(self, engine, chronic):
        result = engine.evaluate(ClinicalFindings(), chronic)

        assert result.status == DiagnosisStatus.NOT_INFECTED
        assert result.score == 0
        assert result.probability == 5
        assert result.reasoning == []

    def test_score_four_is_inconclusive(self, engine, chronic):
        findings = ClinicalFindings(
            laboratory_panels=serology_panel(crp="20"),
            synovial_fluid=SynovialFluidAnalysis(pmn_percent=85),
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 4
        assert result.status == DiagnosisStatus.INCONCLUSIVE
        # Formula, not the 65% bucket value
        assert result.probability == 40

    def test_score_five_is_inconclusive(self, engine, chronic):
        findings = ClinicalFindings(
            laboratory_panels=serology_panel(crp="20"),
            synovial_fluid=SynovialFluidAnalysis(wbc_count=5000),
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 5
        assert result.status == DiagnosisStatus.INCONCLUSIVE
        assert result.probability == 50

    def test_score_six_is_infected(self, engine, chronic):
        findings = ClinicalFindings(
            synovial_fluid=SynovialFluidAnalysis(
                wbc_count=5000,
                alpha_defensin=AlphaDefensinResult.POSITIVE,
            ),
        )

        result = engine.evaluate(findings, chronic)

        assert result.score == 6
        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 60

    @pytest.mark.parametrize("score,expected", [
        (0, 5),
        (2, 20),
        (7, 70),
        (9, 90),
        (10, 99),
        (13, 99),
    ])
    def test_probability_clamp(self, score, expected):
        assert probability_from_score(score) == expected

    def test_probability_always_in_bounds(self):
        for score in range(0, 20):
            assert 5 <= probability_from_score(score) <= 99


# =============================================================================
# Tests: End-to-End and Engine Properties
# =============================================================================

class TestEngineProperties:
    """Scenario and determinism tests."""

    def test_acute_scenario(self, engine, acute, blank_findings):
        """CRP elevated, acute WBC 12000 and PMN 95% -> score 7."""
        findings = blank_findings.with_lab_result("biochemistry", "CRP", "48")
        findings = ClinicalFindings(
            major_criteria=findings.major_criteria,
            symptoms=findings.symptoms,
            culture_samples=findings.culture_samples,
            synovial_fluid=SynovialFluidAnalysis(wbc_count=12000, pmn_percent=95),
            laboratory_panels=findings.laboratory_panels,
        )

        result = engine.evaluate(findings, acute)

        assert result.score == 7
        assert result.status == DiagnosisStatus.INFECTED
        assert result.probability == 70
        assert result.reasoning == [
            "Elevated CRP (>10 mg/L)",
            "Synovial WBC > 10000",
            "PMN% > 90%",
        ]

    def test_idempotent(self, engine, chronic):
        findings = ClinicalFindings(
            laboratory_panels=serology_panel(crp="30"),
            synovial_fluid=SynovialFluidAnalysis(wbc_count=4000),
        )

        first = engine.evaluate(findings, chronic)
        for _ in range(5):
            assert engine.evaluate(findings, chronic) == first

    def test_engine_does_not_mutate_findings(self, engine, chronic):
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="30"))
        before = findings.to_dict()

        engine.evaluate(findings, chronic)

        assert findings.to_dict() == before

    def test_convenience_function_matches_engine(self, engine, acute):
        findings = ClinicalFindings(synovial_fluid=SynovialFluidAnalysis(wbc_count=15000))

        assert evaluate_pji(findings, acute) == engine.evaluate(findings, acute)

    def test_custom_rule_table(self, chronic):
        """Weights can be changed without touching the engine."""
        heavy_fever = MinorCriterion(
            rule_id="fever",
            weight=6,
            message="Fever",
            predicate=lambda findings, context: findings.symptoms.fever,
        )
        engine = PJIRulesEngine(minor_criteria=(heavy_fever,))
        findings = ClinicalFindings(symptoms=SymptomFindings(fever=True))

        result = engine.evaluate(findings, chronic)

        assert result.score == 6
        assert result.status == DiagnosisStatus.INFECTED
        assert result.reasoning == ["Fever"]

    def test_custom_serology_threshold(self, chronic):
        engine = PJIRulesEngine(build_minor_criteria(crp_threshold=50.0))
        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="30"))

        assert engine.evaluate(findings, chronic).score == 0

        findings = ClinicalFindings(laboratory_panels=serology_panel(crp="60"))
        result = engine.evaluate(findings, chronic)
        assert result.score == 2
        assert result.reasoning == ["Elevated CRP (>50 mg/L)"]
