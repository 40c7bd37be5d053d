#!/usr/bin/env python3
"""CLI runner for PJI risk assessment.

Usage:
    python -m pji_src.runner case.json
    python -m pji_src.runner case.json --json
    python -m pji_src.runner case.json --treatment --verbose
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import Config
from .models import PatientDemographics
from .rules.pji_criteria import build_minor_criteria
from .rules.pji_engine import PJIRulesEngine
from .rules.schemas import ClinicalFindings, Diagnosis, PatientContext
from .treatment import infer_pathogen, recommend_treatment

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else Config.get_log_level()
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def load_case(path: Path) -> tuple[ClinicalFindings, PatientContext]:
    """Read a case file.

    The file holds "findings" plus either an explicit "context" or the
    "demographics" dates the context is derived from.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the JSON or the records inside it are invalid
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("findings"), dict):
        raise ValueError("Case file must be a JSON object with a 'findings' object")

    findings = ClinicalFindings.from_dict(data["findings"])
    if "context" in data:
        context = PatientContext.from_dict(data["context"])
    elif "demographics" in data:
        demographics = PatientDemographics.from_dict(data["demographics"])
        context = demographics.context()
    else:
        context = PatientContext()
    return findings, context


def build_engine() -> PJIRulesEngine:
    """Rules engine using the configured serology thresholds."""
    if Config.has_custom_serology_thresholds():
        logger.info(
            "Using custom serology thresholds: CRP > %s mg/L, ESR > %s mm/hr",
            Config.SEROLOGY_CRP_THRESHOLD, Config.SEROLOGY_ESR_THRESHOLD,
        )
    return PJIRulesEngine(
        build_minor_criteria(
            crp_threshold=Config.SEROLOGY_CRP_THRESHOLD,
            esr_threshold=Config.SEROLOGY_ESR_THRESHOLD,
        )
    )


def show_diagnosis(diagnosis: Diagnosis, context: PatientContext) -> None:
    """Display a diagnosis."""
    phase = "Acute (< 3 weeks)" if context.is_acute_infection else "Chronic (> 3 weeks)"
    print("\n=== PJI Assessment ===")
    print(f"Status:       {diagnosis.status.value}")
    print(f"Probability:  {diagnosis.probability:.0f}%")
    print(f"Score:        {diagnosis.score}")
    print(f"Presentation: {phase}")
    print("\nCriteria met:")
    if not diagnosis.reasoning:
        print("  No significant criteria yet.")
    for line in diagnosis.reasoning:
        print(f"  - {line}")
    print()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Periprosthetic joint infection risk assessment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Score a case
    pji-assess case.json

    # Machine-readable output
    pji-assess case.json --json

    # Include the suggested antibiotic regimen
    pji-assess case.json --treatment
        """,
    )
    parser.add_argument("case", type=Path, help="Path to a JSON case file")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--treatment",
        action="store_true",
        help="Include the suggested antibiotic regimen",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        findings, context = load_case(args.case)
    except (OSError, ValueError) as e:
        logger.error("Could not load case %s: %s", args.case, e)
        return 1

    diagnosis = build_engine().evaluate(findings, context)
    plan = recommend_treatment(infer_pathogen(findings)) if args.treatment else None

    if args.json:
        output = {"context": context.to_dict(), "diagnosis": diagnosis.to_dict()}
        if plan:
            output["treatment"] = plan.to_dict()
        print(json.dumps(output, indent=2))
        return 0

    show_diagnosis(diagnosis, context)
    if plan:
        print("=== Suggested Regimen ===")
        print(f"IV:   {plan.iv_drug} {plan.iv_dosage} ({plan.iv_duration})")
        oral = f"{plan.oral_drug} {plan.oral_dosage}".strip()
        if plan.oral_duration:
            oral += f" ({plan.oral_duration})"
        print(f"Oral: {oral}")
        print(f"Source: {plan.citation}")
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
