# models.py
# Data contracts for the semantic action protocol.
# No business logic lives here, only schema and validation.

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator, model_validator

Risk = Literal["none", "low", "high"]
Confirmation = Literal["never", "optional", "review", "required"]
LogStepType = Literal["navigate", "fill", "click", "read_status", "validate", "policy_check", "coerce"]
RuntimeStatus = Literal[
    "completed",
    "awaiting_review",
    "needs_confirmation",
    "validation_error",
    "execution_error",
    "missing_required_fields",
]

ACTION_NAME_RE = re.compile(r"^[A-Za-z][\w-]*(\.[A-Za-z][\w-]*)+$")


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


class AgentAction(BaseModel):
    """One executable capability declared by a site."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    description: str | None = None
    scope: str = Field(..., description="Permission scope, e.g. 'invoices.write'.")
    risk: Risk
    confirmation: Confirmation
    idempotent: bool = False
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: dict[str, Any] = Field(default_factory=dict, alias="outputSchema")

    @property
    def required_fields(self) -> list[str]:
        return list(self.input_schema.get("required") or [])


class AgentDataView(BaseModel):
    """Read-only data view. Navigating to its page is the execution."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    description: str | None = None
    scope: str
    input_schema: dict[str, Any] | None = Field(default=None, alias="inputSchema")
    output_schema: dict[str, Any] = Field(default_factory=dict, alias="outputSchema")


class AgentPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str | None = None
    actions: list[str] = Field(default_factory=list)
    data: list[str] = Field(default_factory=list)


class SiteInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    origin: str
    description: str | None = None


class AgentManifest(BaseModel):
    """Declarative capability description of a site. Produced at build time."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    context: Any = Field(default=None, alias="@context")
    version: str
    site: SiteInfo
    actions: dict[str, AgentAction]
    data: dict[str, AgentDataView] = Field(default_factory=dict)
    errors: dict[str, dict[str, str]] = Field(default_factory=dict)
    pages: dict[str, AgentPage] = Field(default_factory=dict)

    @field_validator("actions")
    @classmethod
    def _action_names_are_dotted(cls, value: dict[str, AgentAction]) -> dict[str, AgentAction]:
        for name in value:
            if not ACTION_NAME_RE.match(name):
                raise ValueError(f"action name {name!r} must be a dot-separated identifier (domain.verb)")
        return value


# ---------------------------------------------------------------------------
# Action catalog (produced by page discovery)
# ---------------------------------------------------------------------------


class DiscoveredField(BaseModel):
    field: str
    tag_name: str = Field(default="input", alias="tagName")
    for_action: str | None = Field(default=None, alias="forAction")
    options: list[str] = Field(default_factory=list, description="Choices scraped from select/radio fields.")

    model_config = ConfigDict(populate_by_name=True)


class DiscoveredStatus(BaseModel):
    output: str
    tag_name: str = Field(default="output", alias="tagName")

    model_config = ConfigDict(populate_by_name=True)


class DiscoveredAction(BaseModel):
    """An action found on the current page, with its annotated metadata."""

    model_config = ConfigDict(populate_by_name=True)

    action: str
    kind: str = "action"
    danger: str | None = None
    confirm: str | None = None
    scope: str | None = None
    idempotent: str | None = None
    fields: list[DiscoveredField] = Field(default_factory=list)
    statuses: list[DiscoveredStatus] = Field(default_factory=list)
    submit_action: str | None = Field(default=None, alias="submitAction")


class ActionCatalog(BaseModel):
    """Snapshot of the actions discoverable on one page."""

    actions: list[DiscoveredAction] = Field(default_factory=list)
    url: str
    timestamp: str

    def find(self, action_name: str) -> DiscoveredAction | None:
        for action in self.actions:
            if action.action == action_name:
                return action
        return None


# ---------------------------------------------------------------------------
# Planner contracts
# ---------------------------------------------------------------------------


class PlannerRequest(BaseModel):
    """A planner's intent to run one action. Semantic names only, never selectors."""

    model_config = ConfigDict(extra="forbid")

    action: Annotated[str, Field(pattern=ACTION_NAME_RE.pattern)]
    args: dict[str, Any]
    confirmed: StrictBool | None = None


class ActionPlan(BaseModel):
    kind: Literal["action"] = "action"
    request: PlannerRequest


class NavigatePlan(BaseModel):
    kind: Literal["navigate"] = "navigate"
    page: str = Field(..., description="Absolute path on the site, e.g. '/invoices/'.")


class AnswerPlan(BaseModel):
    kind: Literal["answer"] = "answer"
    text: str


PlannerResult = Annotated[Union[ActionPlan, NavigatePlan, AnswerPlan], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class PolicyCheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str | None = None

    @model_validator(mode="after")
    def _reason_iff_denied(self) -> "PolicyCheckResult":
        if self.allowed and self.reason is not None:
            raise ValueError("an allowed decision carries no reason")
        if not self.allowed and not self.reason:
            raise ValueError("a denied decision must carry a reason")
        return self


# ---------------------------------------------------------------------------
# Execution log
# ---------------------------------------------------------------------------


class Coercion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    field: str
    from_value: Any = Field(default=None, alias="from")
    to_value: Any = Field(default=None, alias="to")
    rule: str


class LogStep(BaseModel):
    """A single recorded step. Only the payload keys for its type are set."""

    model_config = ConfigDict(frozen=True)

    type: LogStepType
    url: str | None = None
    field: str | None = None
    value: Any = None
    action: str | None = None
    output: str | None = None
    result: str | None = None
    error: str | None = None
    coercions: tuple[Coercion, ...] | None = None


class ExecutionLog(BaseModel):
    """Immutable audit trail of one execution. Steps are in causal order."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    action: str
    mode: Literal["ui", "direct"] = "ui"
    steps: tuple[LogStep, ...] = ()
    timestamp: str

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, exclude_none=True, by_alias=True)


# ---------------------------------------------------------------------------
# Runtime responses, one closed variant per status
# ---------------------------------------------------------------------------


class ConfirmationMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    risk: str
    scope: str
    title: str


class _Response(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    action: str
    log: ExecutionLog | None = None


class CompletedResponse(_Response):
    status: Literal["completed"] = "completed"
    result: str | None = None


class AwaitingReviewResponse(_Response):
    status: Literal["awaiting_review"] = "awaiting_review"
    result: str | None = None


class NeedsConfirmationResponse(_Response):
    status: Literal["needs_confirmation"] = "needs_confirmation"
    confirmation_metadata: ConfirmationMetadata
    error: str | None = None


class ValidationErrorResponse(_Response):
    status: Literal["validation_error"] = "validation_error"
    error: str


class ExecutionErrorResponse(_Response):
    status: Literal["execution_error"] = "execution_error"
    error: str


class MissingFieldsResponse(_Response):
    status: Literal["missing_required_fields"] = "missing_required_fields"
    missing_fields: list[str] = Field(..., min_length=1)
    error: str | None = None


RuntimeResponse = Annotated[
    Union[
        CompletedResponse,
        AwaitingReviewResponse,
        NeedsConfirmationResponse,
        ValidationErrorResponse,
        ExecutionErrorResponse,
        MissingFieldsResponse,
    ],
    Field(discriminator="status"),
]


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    missing_fields: list[str] | None = None
