"""
Automaton Models for FSA Feedback
Data shapes for an authored automaton and its evaluation configuration.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class EvaluationMode(str, Enum):
    """How forgiving the structural pipeline is."""
    strict = "strict"
    lenient = "lenient"
    partial = "partial"


class ExpectedType(str, Enum):
    """Automaton class the author is asked to build."""
    DFA = "DFA"
    NFA = "NFA"
    any = "any"


class FeedbackVerbosity(str, Enum):
    minimal = "minimal"
    standard = "standard"
    detailed = "detailed"


class Automaton(BaseModel):
    """
    An automaton as authored in the editor.

    Transitions stay in their flattened "from|symbol|to" form; the
    validator decodes them. Nothing here is checked for consistency,
    inconsistencies are exactly what the validator reports.
    """
    states: List[str] = Field(default_factory=list)
    alphabet: List[str] = Field(default_factory=list)
    # Flattened "from|symbol|to" strings, kept as given; the codec reports
    # items it cannot decode
    transitions: List[Any] = Field(default_factory=list)
    # None when the author has not picked one yet
    initial_state: Optional[str] = None
    accept_states: List[str] = Field(default_factory=list)


class EvaluationConfig(BaseModel):
    """
    Per-call evaluation settings. Frozen so a single config object can be
    shared between the editor, the orchestrator and the validator.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    evaluation_mode: EvaluationMode = EvaluationMode.lenient
    expected_type: ExpectedType = ExpectedType.any
    feedback_verbosity: FeedbackVerbosity = FeedbackVerbosity.standard
    check_minimality: bool = False
    check_completeness: bool = False
    highlight_errors: bool = True
    show_counterexample: bool = True
    max_test_length: int = Field(default=10, gt=0)
    is_dev: bool = False
    epsilon_symbol: str = Field(default="epsilon")

    @property
    def require_deterministic(self) -> bool:
        return self.expected_type == ExpectedType.DFA

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "EvaluationConfig":
        """Build a config from a loose mapping (UI form, YAML, query params)."""
        if not data:
            return cls()
        return cls.model_validate(dict(data))

    def with_overrides(self, **overrides: Any) -> "EvaluationConfig":
        """Return a copy with the non-None overrides applied."""
        values: Dict[str, Any] = self.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return type(self).model_validate(values)


DEFAULT_EVALUATION_CONFIG = EvaluationConfig()
