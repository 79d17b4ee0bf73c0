"""
FSA Feedback command line.

Validates an automaton stored as JSON and prints the feedback report:

    fsa-feedback validate answer.json --expected-type DFA
    fsa-feedback validate answer.json --json
    fsa-feedback validate answer.json --dot answer.dot
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .core.config import load_evaluation_config
from .core.logging_config import get_logger, setup_logging
from .core.models import Automaton, EvaluationConfig
from .core.render import to_dot
from .core.schemas import FeedbackReport
from .core.validator import StructuralValidator

logger = get_logger(__name__)


class FSAFeedbackSystem:
    def __init__(self, config: Optional[EvaluationConfig] = None, config_path: Optional[str] = None):
        self.config = config or load_evaluation_config(config_path)
        self.validator = StructuralValidator(self.config)
        logger.info("system_initialized", expected_type=self.config.expected_type.value)

    def evaluate(self, automaton: Automaton, config: Optional[EvaluationConfig] = None) -> FeedbackReport:
        validator = self.validator if config is None else StructuralValidator(config)
        return validator.validate(automaton)

    # --- MAIN LOOP ---
    def run(self, path: str, as_json: bool = False, dot_path: Optional[str] = None) -> int:
        start_time = time.time()

        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            automaton = Automaton.model_validate(data)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            print(f"Could not read automaton from {path}: {e}", file=sys.stderr)
            return 2

        report = self.evaluate(automaton)

        if dot_path:
            Path(dot_path).write_text(to_dot(automaton, report), encoding="utf-8")

        if as_json:
            print(report.to_json(indent=2))
        else:
            print(format_report(report))

        logger.info(
            "automaton_validated",
            path=path,
            errors=len(report.errors),
            warnings=len(report.warnings),
            elapsed_ms=round((time.time() - start_time) * 1000, 1),
        )
        return 0 if report.is_valid else 1


def format_report(report: FeedbackReport) -> str:
    lines = [report.summary]
    for title, findings in (("Errors", report.errors), ("Warnings", report.warnings)):
        if not findings:
            continue
        lines.append(f"\n{title}:")
        for f in findings:
            lines.append(f"  [{f.code.value}] {f.message}")
            if f.suggestion:
                lines.append(f"      hint: {f.suggestion}")

    s = report.structural
    if s is not None:
        lines.append("\nStructure:")
        lines.append(f"  Deterministic: {'Yes' if s.is_deterministic else 'No'}")
        lines.append(f"  Complete: {'Yes' if s.is_complete else 'No'}")
        if s.unreachable_states:
            lines.append(f"  Unreachable states: {', '.join(s.unreachable_states)}")
        if s.dead_states:
            lines.append(f"  Dead states: {', '.join(s.dead_states)}")

    if report.hints:
        lines.append("\nHints:")
        lines.extend(f"  - {h}" for h in report.hints)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fsa-feedback", description="Structural feedback for finite-state automata")
    sub = parser.add_subparsers(dest="command", required=True)

    v = sub.add_parser("validate", help="Validate an automaton JSON file")
    v.add_argument("path", help="JSON file with states, alphabet, transitions, initial_state, accept_states")
    v.add_argument("--config", help="YAML evaluation config (defaults to config/evaluation.yaml)")
    v.add_argument("--expected-type", choices=["DFA", "NFA", "any"])
    v.add_argument("--mode", choices=["strict", "lenient", "partial"], dest="evaluation_mode")
    v.add_argument("--verbosity", choices=["minimal", "standard", "detailed"], dest="feedback_verbosity")
    v.add_argument("--check-completeness", action="store_true", default=None)
    v.add_argument("--check-minimality", action="store_true", default=None)
    v.add_argument("--json", action="store_true", dest="as_json", help="Print the report as JSON")
    v.add_argument("--dot", dest="dot_path", help="Also write a Graphviz DOT rendering")
    v.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level, file_output=False)

    config = load_evaluation_config(args.config).with_overrides(
        expected_type=args.expected_type,
        evaluation_mode=args.evaluation_mode,
        feedback_verbosity=args.feedback_verbosity,
        check_completeness=args.check_completeness,
        check_minimality=args.check_minimality,
    )
    system = FSAFeedbackSystem(config=config)
    return system.run(args.path, as_json=args.as_json, dot_path=args.dot_path)


if __name__ == "__main__":
    sys.exit(main())
