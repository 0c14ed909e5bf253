# contracts.py
# Contract validation for planner requests and runtime responses.
#
# Planners communicate intent by field name, never by DOM location. Any
# string argument that looks like a CSS selector is rejected outright.

import re
from functools import lru_cache
from typing import Any, get_args

from pydantic import TypeAdapter, ValidationError

from agent_actions.models import PlannerRequest, RuntimeResponse, RuntimeStatus, ValidationResult

RUNTIME_STATUSES: frozenset[str] = frozenset(get_args(RuntimeStatus))

SELECTOR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^[.#]\w"),                 # .class or #id
    re.compile(r"^\[[\w-]+="),              # [attr=value]
    re.compile(r"\s*>\s*"),                 # child combinator
    re.compile(r"::?[A-Za-z][\w-]*"),       # :hover, ::before
    re.compile(
        r"^(?:div|span|input|button|form|table|tr|td|th|ul|ol|li|h[1-6])(?:\s|$|[.#\[>~+:{])",
        re.IGNORECASE,
    ),
)


def looks_like_selector(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    return any(pattern.search(value) for pattern in SELECTOR_PATTERNS)


def _format_errors(exc: ValidationError, strip_tag: str | None = None) -> list[str]:
    messages: list[str] = []
    for err in exc.errors():
        loc = [str(part) for part in err["loc"]]
        if strip_tag and loc and loc[0] == strip_tag:
            loc = loc[1:]
        messages.append(f"/{'/'.join(loc)}: {err['msg']}")
    return messages


@lru_cache(maxsize=None)
def _runtime_response_adapter() -> TypeAdapter:
    # Built once per process on first use; read-only afterwards.
    return TypeAdapter(RuntimeResponse)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_planner_request(data: Any) -> ValidationResult:
    """
    Validate a planner request.

    Checks, in order: a non-null object; the request shape (``action`` and
    ``args`` required, optional ``confirmed``, nothing else); no argument
    value shaped like a CSS selector.
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors=["Request must be a non-null object"])

    try:
        request = PlannerRequest.model_validate(data)
    except ValidationError as exc:
        return ValidationResult(valid=False, errors=_format_errors(exc))

    errors = [
        f"args.{key}: value looks like a CSS selector — planners must use semantic field names, not selectors"
        for key, value in request.args.items()
        if looks_like_selector(value)
    ]
    if errors:
        return ValidationResult(valid=False, errors=errors)
    return ValidationResult(valid=True)


def validate_runtime_response(data: Any) -> ValidationResult:
    """Validate a runtime response against the variant its status selects."""
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors=["Response must be a non-null object"])

    status = data.get("status")
    if status not in RUNTIME_STATUSES:
        return ValidationResult(valid=False, errors=[f'Invalid status: "{status}"'])

    errors: list[str] = []
    if status == "needs_confirmation" and not data.get("confirmation_metadata"):
        errors.append("needs_confirmation status requires confirmation_metadata")
    if status == "missing_required_fields" and not data.get("missing_fields"):
        errors.append("missing_required_fields status requires non-empty missing_fields array")
    if errors:
        return ValidationResult(valid=False, errors=errors)

    try:
        _runtime_response_adapter().validate_python(data)
    except ValidationError as exc:
        return ValidationResult(valid=False, errors=_format_errors(exc, strip_tag=status))
    return ValidationResult(valid=True)
