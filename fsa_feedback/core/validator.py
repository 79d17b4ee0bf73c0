"""
Structural Validator
Runs the fixed check pipeline over an authored automaton and produces a
classified FeedbackReport.

Every stage appends findings instead of short-circuiting, so one call
surfaces the complete set of problems. The validator is pure: it never
mutates its input and never raises on malformed input.
"""

from typing import Any, List, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from .codec import DecodeError, decode_transition
from .graph import TransitionGraph
from .models import Automaton, EvaluationConfig, EvaluationMode, FeedbackVerbosity
from .schemas import (
    AlphabetSymbolHighlight,
    ErrorCode,
    FeedbackReport,
    Severity,
    StateHighlight,
    StructuralInfo,
    TransitionHighlight,
    ValidationError,
)

log = structlog.get_logger(__name__)

AutomatonInput = Union[Automaton, Mapping[str, Any], None]


class _Findings:
    """Collects findings into the error/warning buckets by severity."""

    def __init__(self):
        self.errors: List[ValidationError] = []
        self.warnings: List[ValidationError] = []

    def add(self, code: ErrorCode, message: str, severity: Severity = Severity.error,
            highlight=None, suggestion: Optional[str] = None) -> None:
        finding = ValidationError(
            message=message,
            code=code,
            severity=severity,
            highlight=highlight,
            suggestion=suggestion,
        )
        if severity == Severity.error:
            self.errors.append(finding)
        else:
            self.warnings.append(finding)

    def has(self, code: ErrorCode) -> bool:
        return any(f.code == code for f in [*self.errors, *self.warnings])


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def summarize(is_deterministic: bool, num_states: int, num_transitions: int) -> str:
    """One-line summary; the label reflects computed determinism."""
    label = "DFA" if is_deterministic else "NFA"
    return f"{label} with {_plural(num_states, 'state')} and {_plural(num_transitions, 'transition')}"


class StructuralValidator:
    def __init__(self, config: Optional[EvaluationConfig] = None):
        self.config = config or EvaluationConfig()

    def validate(self, automaton: AutomatonInput) -> FeedbackReport:
        if automaton is None:
            return self._evaluation_error("No automaton provided.")

        if not isinstance(automaton, Automaton):
            try:
                automaton = Automaton.model_validate(automaton)
            except PydanticValidationError as e:
                log.debug("automaton_rejected", errors=e.error_count())
                return self._evaluation_error(f"Automaton could not be read: {e.error_count()} invalid field(s).")

        config = self.config
        findings = _Findings()
        states = automaton.states
        alphabet = automaton.alphabet
        epsilon = config.epsilon_symbol

        # 1. Non-emptiness
        self._check_non_empty(automaton, findings)

        # 2-3. Initial and accept states
        self._check_initial_state(automaton, findings)
        self._check_accept_states(automaton, findings)

        # 4. Decode transitions and build the shared adjacency graph
        graph = self._check_transitions(automaton, findings)

        # 5. Determinism
        is_deterministic = self._check_determinism(graph, findings)

        # 6. Completeness
        is_complete = False
        if is_deterministic and states and alphabet and epsilon not in alphabet:
            is_complete = self._check_completeness(states, alphabet, graph, findings)

        # 7. Reachability
        reachable = graph.reachable_from(automaton.initial_state, states)
        unreachable_states = [s for s in states if s not in reachable]
        for state in unreachable_states:
            findings.add(
                ErrorCode.UNREACHABLE_STATE,
                f'State "{state}" is unreachable from the initial state.',
                Severity.warning,
                StateHighlight(type="state", state_id=state),
                suggestion=f'Add a transition into "{state}" or remove it.',
            )

        # 8. Dead states
        productive = graph.can_reach(automaton.accept_states)
        dead_states = [
            s for s in states if s not in productive and s not in automaton.accept_states
        ]
        for state in dead_states:
            findings.add(
                ErrorCode.DEAD_STATE,
                f'State "{state}" is a dead state (cannot reach an accept state).',
                Severity.warning,
                StateHighlight(type="state", state_id=state),
                suggestion="Dead states are only useful as a trap state for completeness.",
            )

        # 9. Minimality
        if config.check_minimality and is_complete and not findings.errors:
            self._check_minimality(automaton, graph, findings)

        structural = StructuralInfo(
            is_deterministic=is_deterministic,
            is_complete=is_complete,
            num_states=len(states),
            num_transitions=len(automaton.transitions),
            unreachable_states=unreachable_states,
            dead_states=dead_states,
        )
        report = FeedbackReport(
            summary=summarize(is_deterministic, len(states), len(automaton.transitions)),
            errors=findings.errors,
            warnings=findings.warnings,
            structural=structural,
            hints=self._hints(findings) if config.feedback_verbosity == FeedbackVerbosity.detailed else [],
        )

        log.debug(
            "validation_complete",
            summary=report.summary,
            errors=len(report.errors),
            warnings=len(report.warnings),
        )
        return self._present(report)

    # --- Pipeline stages ---

    def _check_non_empty(self, automaton: Automaton, findings: _Findings) -> None:
        if not automaton.states:
            findings.add(
                ErrorCode.EMPTY_STATES,
                "The automaton has no states.",
                suggestion="Add at least one state.",
            )

        if not automaton.alphabet:
            # Lenient modes tolerate a missing alphabet while nothing uses it
            alphabet_unused = not automaton.transitions
            if self.config.evaluation_mode == EvaluationMode.strict or not alphabet_unused:
                findings.add(
                    ErrorCode.EMPTY_ALPHABET,
                    "The automaton has no alphabet symbols.",
                    suggestion="Declare the input symbols the automaton reads.",
                )

    def _check_initial_state(self, automaton: Automaton, findings: _Findings) -> None:
        initial = automaton.initial_state
        if initial in automaton.states:
            return

        message = (
            f'Initial state "{initial}" is not a valid state.'
            if initial else "No initial state has been set."
        )
        findings.add(
            ErrorCode.INVALID_INITIAL,
            message,
            highlight=StateHighlight(type="initial_state", state_id=initial or None),
            suggestion="Mark one of the existing states as the initial state.",
        )

    def _check_accept_states(self, automaton: Automaton, findings: _Findings) -> None:
        for state in automaton.accept_states:
            if state not in automaton.states:
                findings.add(
                    ErrorCode.INVALID_ACCEPT,
                    f'Accept state "{state}" is not a valid state.',
                    highlight=StateHighlight(type="accept_state", state_id=state),
                    suggestion=f'Add "{state}" to the states or unmark it as accepting.',
                )

    def _check_transitions(self, automaton: Automaton, findings: _Findings) -> TransitionGraph:
        graph = TransitionGraph()
        states = automaton.states
        alphabet = automaton.alphabet

        for raw in automaton.transitions:
            decoded = decode_transition(raw)
            if isinstance(decoded, DecodeError):
                # Not safely highlightable
                findings.add(decoded.code, decoded.message)
                continue

            source, symbol, destination = decoded
            edge = TransitionHighlight(from_state=source, to_state=destination, symbol=symbol)

            if source not in states:
                findings.add(
                    ErrorCode.INVALID_TRANSITION_SOURCE,
                    f'Transition source "{source}" is invalid.',
                    highlight=edge,
                )
            if destination not in states:
                findings.add(
                    ErrorCode.INVALID_TRANSITION_DEST,
                    f'Transition destination "{destination}" is invalid.',
                    highlight=edge,
                )
            if symbol not in alphabet:
                findings.add(
                    ErrorCode.INVALID_TRANSITION_SYMBOL,
                    f'Transition symbol "{symbol}" is invalid.',
                    highlight=AlphabetSymbolHighlight(symbol=symbol),
                    suggestion=f'Add "{symbol}" to the alphabet or relabel the transition.',
                )

            graph.add(decoded)

        return graph

    def _check_determinism(self, graph: TransitionGraph, findings: _Findings) -> bool:
        epsilon = self.config.epsilon_symbol
        strict = self.config.require_deterministic
        severity = Severity.error if strict else Severity.warning

        duplicates = graph.duplicated_symbols()
        for state, symbol in duplicates:
            findings.add(
                ErrorCode.NOT_DETERMINISTIC,
                f'Non-determinism detected: multiple transitions from "{state}" on symbol "{symbol}".',
                severity,
                StateHighlight(type="state", state_id=state),
                suggestion=f'Keep a single "{symbol}" transition out of "{state}".',
            )

        epsilon_edge = graph.first_with_symbol(epsilon)
        if epsilon_edge is not None and strict:
            findings.add(
                ErrorCode.NOT_DETERMINISTIC,
                f'Epsilon transitions are not allowed in a DFA (epsilon = "{epsilon}").',
                highlight=TransitionHighlight(
                    from_state=epsilon_edge.source,
                    to_state=epsilon_edge.destination,
                    symbol=epsilon_edge.symbol,
                ),
                suggestion="Replace epsilon transitions with transitions on input symbols.",
            )

        return not duplicates and epsilon_edge is None

    def _check_completeness(self, states: List[str], alphabet: List[str],
                            graph: TransitionGraph, findings: _Findings) -> bool:
        severity = Severity.error if self.config.check_completeness else Severity.warning
        is_complete = True
        for state in states:
            for symbol in dict.fromkeys(alphabet):
                if len(graph.targets(state, symbol)) == 1:
                    continue
                is_complete = False
                findings.add(
                    ErrorCode.MISSING_TRANSITION,
                    f'Missing transition from "{state}" on symbol "{symbol}".',
                    severity,
                    StateHighlight(type="state", state_id=state),
                    suggestion=f'Add a "{symbol}" transition out of "{state}", e.g. to a trap state.',
                )
        return is_complete

    def _check_minimality(self, automaton: Automaton, graph: TransitionGraph,
                          findings: _Findings) -> None:
        distinct = len(dict.fromkeys(automaton.states))
        minimal = graph.minimal_state_count(
            automaton.initial_state,
            automaton.states,
            list(dict.fromkeys(automaton.alphabet)),
            automaton.accept_states,
        )
        if minimal < distinct:
            findings.add(
                ErrorCode.NOT_MINIMAL,
                f"The automaton has {_plural(distinct, 'state')} but an equivalent minimal DFA "
                f"needs only {minimal}.",
                Severity.warning,
                suggestion="Merge equivalent states and drop unreachable ones.",
            )

    # --- Presentation ---

    def _hints(self, findings: _Findings) -> List[str]:
        hints = []
        if findings.has(ErrorCode.NOT_DETERMINISTIC) and self.config.require_deterministic:
            hints.append(
                "A DFA needs at most one transition per state and symbol, and no epsilon transitions."
            )
        if findings.has(ErrorCode.MISSING_TRANSITION):
            hints.append(
                "Add a trap state that loops on every symbol to make the automaton complete."
            )
        if findings.has(ErrorCode.UNREACHABLE_STATE):
            hints.append(
                "States that cannot be reached from the initial state never affect the language."
            )
        if findings.has(ErrorCode.DEAD_STATE):
            hints.append("Strings that enter a dead state are always rejected.")
        if findings.has(ErrorCode.NOT_MINIMAL):
            hints.append("Two states are equivalent when they accept exactly the same suffixes.")
        return hints

    def _present(self, report: FeedbackReport) -> FeedbackReport:
        update = {}
        if self.config.feedback_verbosity == FeedbackVerbosity.minimal:
            update["suggestion"] = None
        if not self.config.highlight_errors:
            update["highlight"] = None
        if not update:
            return report

        return report.model_copy(update={
            "errors": [f.model_copy(update=update) for f in report.errors],
            "warnings": [f.model_copy(update=update) for f in report.warnings],
        })

    def _evaluation_error(self, message: str) -> FeedbackReport:
        return FeedbackReport(
            errors=[ValidationError(
                message=message,
                code=ErrorCode.EVALUATION_ERROR,
                severity=Severity.error,
            )],
        )


def validate(automaton: AutomatonInput, config: Optional[EvaluationConfig] = None) -> FeedbackReport:
    """Validate an automaton with the given (or default) configuration."""
    return StructuralValidator(config).validate(automaton)
