"""
Core modules for FSA Feedback.
Centralized exports for the validation engine and its collaborators.
"""

from .models import (
    Automaton,
    EvaluationConfig,
    EvaluationMode,
    ExpectedType,
    FeedbackVerbosity,
)

from .schemas import (
    ErrorCode,
    Severity,
    StateHighlight,
    TransitionHighlight,
    AlphabetSymbolHighlight,
    ValidationError,
    StructuralInfo,
    LanguageComparison,
    TestResult,
    FeedbackReport,
)

from .codec import (
    Transition,
    DecodeError,
    decode_transition,
    encode_transition,
)

from .validator import StructuralValidator, validate

from .preview import PreviewOrchestrator, PreviewState

from .remote import (
    RemoteEvaluator,
    RemoteEvaluatorError,
    PreviewRequest,
    PreviewParams,
    decode_preview_payload,
)

from .legacy import extract_embedded_feedback

from .render import to_dot

__all__ = [
    # Models
    "Automaton",
    "EvaluationConfig",
    "EvaluationMode",
    "ExpectedType",
    "FeedbackVerbosity",
    # Schemas
    "ErrorCode",
    "Severity",
    "StateHighlight",
    "TransitionHighlight",
    "AlphabetSymbolHighlight",
    "ValidationError",
    "StructuralInfo",
    "LanguageComparison",
    "TestResult",
    "FeedbackReport",
    # Codec
    "Transition",
    "DecodeError",
    "decode_transition",
    "encode_transition",
    # Validator
    "StructuralValidator",
    "validate",
    # Preview
    "PreviewOrchestrator",
    "PreviewState",
    # Remote evaluator
    "RemoteEvaluator",
    "RemoteEvaluatorError",
    "PreviewRequest",
    "PreviewParams",
    "decode_preview_payload",
    # Legacy feedback
    "extract_embedded_feedback",
    # Rendering
    "to_dot",
]
