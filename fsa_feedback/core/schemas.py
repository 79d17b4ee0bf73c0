"""
Feedback Schemas for FSA Feedback
Pydantic models for the classified validation output: findings,
highlight targets, structural metrics and the report itself.
"""

import json
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorCode(str, Enum):
    """Fixed finding codes shared with the remote evaluator."""
    INVALID_STATE = "INVALID_STATE"
    INVALID_INITIAL = "INVALID_INITIAL"
    INVALID_ACCEPT = "INVALID_ACCEPT"
    INVALID_SYMBOL = "INVALID_SYMBOL"
    INVALID_TRANSITION_SOURCE = "INVALID_TRANSITION_SOURCE"
    INVALID_TRANSITION_DEST = "INVALID_TRANSITION_DEST"
    INVALID_TRANSITION_SYMBOL = "INVALID_TRANSITION_SYMBOL"
    MISSING_TRANSITION = "MISSING_TRANSITION"
    DUPLICATE_TRANSITION = "DUPLICATE_TRANSITION"
    NOT_DETERMINISTIC = "NOT_DETERMINISTIC"
    NOT_COMPLETE = "NOT_COMPLETE"
    UNREACHABLE_STATE = "UNREACHABLE_STATE"
    DEAD_STATE = "DEAD_STATE"
    WRONG_AUTOMATON_TYPE = "WRONG_AUTOMATON_TYPE"
    NOT_MINIMAL = "NOT_MINIMAL"
    LANGUAGE_MISMATCH = "LANGUAGE_MISMATCH"
    TEST_CASE_FAILED = "TEST_CASE_FAILED"
    EMPTY_STATES = "EMPTY_STATES"
    EMPTY_ALPHABET = "EMPTY_ALPHABET"
    EVALUATION_ERROR = "EVALUATION_ERROR"


class Severity(str, Enum):
    error = "error"
    warning = "warning"
    info = "info"


# --- Highlights ---

class StateHighlight(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["state", "initial_state", "accept_state"] = "state"
    state_id: Optional[str] = None


class TransitionHighlight(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["transition"] = "transition"
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    symbol: Optional[str] = None


class AlphabetSymbolHighlight(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["alphabet_symbol"] = "alphabet_symbol"
    symbol: Optional[str] = None


ElementHighlight = Annotated[
    Union[StateHighlight, TransitionHighlight, AlphabetSymbolHighlight],
    Field(discriminator="type"),
]


# --- Findings ---

class ValidationError(BaseModel):
    """
    A single finding. Named after the wire schema; this is not an
    exception and is never raised.
    """
    model_config = ConfigDict(frozen=True)

    message: str
    code: ErrorCode
    severity: Severity = Severity.error
    highlight: Optional[ElementHighlight] = None
    suggestion: Optional[str] = None


class StructuralInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_deterministic: bool
    is_complete: bool
    num_states: int
    num_transitions: int
    unreachable_states: List[str] = Field(default_factory=list)
    dead_states: List[str] = Field(default_factory=list)


class LanguageComparison(BaseModel):
    """Produced by the external evaluator only."""
    model_config = ConfigDict(frozen=True)

    are_equivalent: bool
    counterexample: Optional[str] = None
    counterexample_type: Optional[Literal["should_accept", "should_reject"]] = None


class TestResult(BaseModel):
    """Produced by the external evaluator only."""
    model_config = ConfigDict(frozen=True)
    __test__ = False

    input: str
    expected: bool
    actual: bool
    passed: bool


class FeedbackReport(BaseModel):
    """
    Output of one validation call. Value data: frozen and safe to share
    between the orchestrator, the API layer and renderers.
    """
    model_config = ConfigDict(frozen=True)

    summary: str = ""
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationError] = Field(default_factory=list)
    structural: Optional[StructuralInfo] = None
    language: Optional[LanguageComparison] = None
    test_results: List[TestResult] = Field(default_factory=list)
    hints: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def all_findings(self) -> List[ValidationError]:
        return [*self.errors, *self.warnings]

    def codes(self) -> List[ErrorCode]:
        """Codes of every finding, errors first, in report order."""
        return [f.code for f in self.all_findings()]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dict, the shape the renderer and grader consume."""
        return self.model_dump(mode="json")

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)
