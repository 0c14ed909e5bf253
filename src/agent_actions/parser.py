# parser.py
# Extracts a single structured result from raw planner output.
#
# Tolerates the usual model quirks: markdown fences, preamble text and
# trailing prose. Shape checking is delegated to contracts.py.

import json
import re
from urllib.parse import urlparse

from agent_actions.contracts import validate_planner_request
from agent_actions.errors import ContractViolationError, ParseError, ResolutionError
from agent_actions.models import ActionPlan, AnswerPlan, NavigatePlan, PlannerRequest, PlannerResult

NONE_ACTION = "none"
NAVIGATE_ACTION = "navigate"
NAVIGATE_KEYS = ("page", "route", "path", "target", "url", "destination", "to")

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_json(text: str) -> str | None:
    """
    Return the first JSON object text found in ``text``, or None.

    A fenced code block wins if present. Otherwise the first ``{`` is matched
    to its closing brace, ignoring braces inside quoted strings.
    """
    fenced = _FENCE_RE.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        ch = text[index]
        if escape:
            escape = False
            continue
        if ch == "\\" and in_string:
            escape = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None


def normalize_path(raw: str) -> str | None:
    """
    Normalize a model-provided page reference to an absolute path.
    Handles "/invoices/new", "invoices/new" and full http(s) URLs.
    """
    trimmed = raw.strip()
    if not trimmed:
        return None
    if re.match(r"^https?://", trimmed, re.IGNORECASE):
        parsed = urlparse(trimmed)
        if not parsed.netloc:
            return None
        return parsed.path or "/"
    if trimmed.startswith("/"):
        return trimmed
    if re.match(r"^[a-z0-9]", trimmed, re.IGNORECASE):
        return f"/{trimmed}"
    return None


def _navigate_page(args: object) -> str | None:
    if not isinstance(args, dict):
        return None
    for key in NAVIGATE_KEYS:
        value = args.get(key)
        if isinstance(value, str):
            page = normalize_path(value)
            if page:
                return page
    for value in args.values():
        if isinstance(value, str):
            page = normalize_path(value)
            if page:
                return page
    return None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_response(raw: str) -> PlannerResult:
    """
    Interpret raw model output as an action request, a navigation directive
    or a direct answer.

    Raises ParseError when no JSON object can be located or decoded,
    ResolutionError when the model answered "none" without an answer, and
    ContractViolationError when the object breaks the request contract.
    """
    extracted = extract_json(raw)
    if extracted is None:
        raise ParseError(f"Could not extract JSON from LLM response: {raw[:200]}")

    try:
        parsed = json.loads(extracted)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON in LLM response: {extracted[:200]}") from exc

    if not isinstance(parsed, dict):
        raise ContractViolationError("Invalid planner request: Request must be a non-null object")

    if isinstance(parsed.get("navigate"), str):
        page = normalize_path(parsed["navigate"])
        if not page:
            raise ContractViolationError(f'Invalid navigate target: "{parsed["navigate"]}" — must be a path')
        return NavigatePlan(page=page)

    action = parsed.get("action")

    if action == NAVIGATE_ACTION:
        page = _navigate_page(parsed.get("args"))
        if not page:
            raise ContractViolationError("Invalid navigate request — args must include a recognizable page path")
        return NavigatePlan(page=page)

    if action == NONE_ACTION:
        answer = parsed.get("answer")
        if isinstance(answer, str) and answer:
            return AnswerPlan(text=answer)
        raise ResolutionError(str(parsed.get("error") or "LLM could not map request to an action"))

    validation = validate_planner_request(parsed)
    if not validation.valid:
        raise ContractViolationError(
            f"Invalid planner request: {', '.join(validation.errors)}",
            errors=validation.errors,
        )

    return ActionPlan(request=PlannerRequest.model_validate(parsed))
