"""
Remote Evaluator Client
Calls the remote preview evaluator over GraphQL (httpx) and decodes its
provider-shaped payload into a FeedbackReport.

Any failure, transport or payload, surfaces as RemoteEvaluatorError so the
caller can fall back to the local report.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from .models import Automaton, EvaluationConfig
from .schemas import FeedbackReport, StructuralInfo, ValidationError
from .validator import summarize

log = structlog.get_logger(__name__)

PREVIEW_MUTATION = """
mutation SubmitResponsePreview(
  $submission: JSON!
  $additionalParams: JSON
  $responseAreaId: String!
  $universalResponseAreaId: String!
) {
  submitResponsePreview(
    submission: $submission
    additionalParams: $additionalParams
    responseAreaId: $responseAreaId
    universalResponseAreaId: $universalResponseAreaId
  ) {
    feedback
    preview
  }
}
""".strip()


class RemoteEvaluatorError(Exception):
    """Raised when the remote evaluator is unreachable or answers garbage."""
    pass


# --- Request shapes ---

class PreviewParams(BaseModel):
    require_deterministic: bool = False
    show_warnings: bool = True

    @classmethod
    def for_config(cls, config: EvaluationConfig) -> "PreviewParams":
        return cls(require_deterministic=config.require_deterministic, show_warnings=True)


class PreviewRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    submission: Automaton
    additional_params: PreviewParams = Field(default_factory=PreviewParams, alias="additionalParams")
    response_area_id: Optional[str] = Field(default=None, alias="responseAreaId")
    universal_response_area_id: Optional[str] = Field(default=None, alias="universalResponseAreaId")

    def variables(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# --- Response shapes ---

class StructuredFeedback(BaseModel):
    """The evaluator's "sympy" block. Every field is optional."""
    model_config = ConfigDict(extra="ignore")

    errors: List[Dict[str, Any]] = Field(default_factory=list)
    warnings: List[Dict[str, Any]] = Field(default_factory=list)
    num_states: Optional[int] = None
    num_transitions: Optional[int] = None
    is_deterministic: bool = False
    is_complete: bool = False
    unreachable_states: List[str] = Field(default_factory=list)
    dead_states: List[str] = Field(default_factory=list)


class PreviewBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    feedback: Optional[str] = None
    latex: Optional[str] = None
    sympy: Optional[StructuredFeedback] = None


class PreviewPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    feedback: Optional[str] = None
    preview: Optional[PreviewBody] = None


def _findings(raw_items: List[Dict[str, Any]]) -> List[ValidationError]:
    """Keep the items that match the finding schema, drop the rest."""
    findings = []
    for item in raw_items:
        try:
            findings.append(ValidationError.model_validate(item))
        except PydanticValidationError:
            log.debug("remote_finding_dropped", item=item)
    return findings


def structured_to_report(structured: StructuredFeedback, submission: Automaton) -> FeedbackReport:
    num_states = structured.num_states if structured.num_states is not None else len(submission.states)
    num_transitions = (
        structured.num_transitions
        if structured.num_transitions is not None
        else len(submission.transitions)
    )
    return FeedbackReport(
        summary=summarize(structured.is_deterministic, num_states, num_transitions),
        errors=_findings(structured.errors),
        warnings=_findings(structured.warnings),
        structural=StructuralInfo(
            is_deterministic=structured.is_deterministic,
            is_complete=structured.is_complete,
            num_states=num_states,
            num_transitions=num_transitions,
            unreachable_states=structured.unreachable_states,
            dead_states=structured.dead_states,
        ),
    )


def decode_preview_payload(
    payload: Any,
    submission: Automaton,
    local_report: FeedbackReport,
) -> Tuple[Optional[str], FeedbackReport]:
    """
    Map the evaluator payload to (preview text, report).

    Without a structured block the local report stays authoritative.
    Raises RemoteEvaluatorError when the payload does not match the schema.
    """
    try:
        parsed = PreviewPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise RemoteEvaluatorError(f"Malformed preview payload: {e.error_count()} invalid field(s)") from e

    if parsed.preview is None:
        return parsed.feedback, local_report

    body = parsed.preview
    if body.sympy is None:
        return body.feedback, local_report
    return body.feedback, structured_to_report(body.sympy, submission)


# --- Client ---

class RemoteEvaluator:
    """
    Async GraphQL client for the preview evaluator.

    An httpx.AsyncClient may be injected (tests use httpx.MockTransport);
    otherwise one is created per call.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = client

    async def preview(self, request: PreviewRequest) -> Dict[str, Any]:
        body = {"query": PREVIEW_MUTATION, "variables": request.variables()}

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=body, headers=self.headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=body, headers=self.headers)
        except httpx.TimeoutException as e:
            raise RemoteEvaluatorError(f"Request timeout after {self.timeout}s") from e
        except httpx.RequestError as e:
            raise RemoteEvaluatorError(f"Request error: {e}") from e

        if response.status_code >= 400:
            raise RemoteEvaluatorError(
                f"GraphQL request failed ({response.status_code} {response.reason_phrase})"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteEvaluatorError("GraphQL response is not JSON") from e

        if not isinstance(data, dict):
            raise RemoteEvaluatorError("GraphQL response is not an object")

        errors = data.get("errors") or []
        if errors:
            messages = [e.get("message") for e in errors if isinstance(e, dict) and e.get("message")]
            raise RemoteEvaluatorError("\n".join(messages) or "GraphQL error")

        payload = data.get("data")
        result = payload.get("submitResponsePreview") if isinstance(payload, dict) else None
        if result is None:
            raise RemoteEvaluatorError("GraphQL: no data returned")

        log.debug("remote_preview_received", url=self.url)
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
