import pytest

from agent_actions.errors import ContractViolationError, ParseError, ResolutionError
from agent_actions.models import ActionPlan, AnswerPlan, NavigatePlan
from agent_actions.parser import extract_json, normalize_path, parse_response

VALID = '{"action": "invoice.create", "args": {"customer_email": "alice@example.com", "amount": 120, "currency": "EUR"}}'

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def test_extract_plain_json():
    assert extract_json(VALID) == VALID


def test_extract_fenced_json_with_preamble():
    raw = f"Here is the plan you asked for:\n```json\n{VALID}\n```\nLet me know!"
    assert extract_json(raw) == VALID


def test_extract_fence_without_language_tag():
    raw = f"```\n{VALID}\n```"
    assert extract_json(raw) == VALID


def test_extract_balanced_object_before_trailing_prose():
    raw = f"Sure. {VALID} Hope that helps {{not json}}"
    assert extract_json(raw) == VALID


def test_extract_ignores_braces_inside_strings():
    obj = r'{"action": "invoice.create", "args": {"memo": "a } b { \"quoted }\" c"}}'
    raw = f"Preamble {obj} trailing }} text"
    assert extract_json(raw) == obj


def test_extract_returns_none_without_object():
    assert extract_json("I could not decide.") is None


def test_extract_returns_none_for_unbalanced_object():
    assert extract_json('{"action": "invoice.create", "args": {') is None


# ---------------------------------------------------------------------------
# Parsing: action requests
# ---------------------------------------------------------------------------


def test_parse_action_request():
    result = parse_response(VALID)
    assert isinstance(result, ActionPlan)
    assert result.kind == "action"
    assert result.request.action == "invoice.create"
    assert result.request.args == {"customer_email": "alice@example.com", "amount": 120, "currency": "EUR"}


def test_parse_fenced_action_request():
    result = parse_response(f"```json\n{VALID}\n```")
    assert isinstance(result, ActionPlan)


def test_parse_keeps_confirmed_flag():
    result = parse_response('{"action": "workspace.delete", "args": {}, "confirmed": false}')
    assert result.request.confirmed is False


def test_parse_no_json_raises_parse_error():
    with pytest.raises(ParseError, match="Could not extract JSON"):
        parse_response("This is not valid JSON at all")


def test_parse_malformed_json_raises_parse_error():
    with pytest.raises(ParseError, match="Invalid JSON"):
        parse_response("{broken: json}")


def test_parse_selector_argument_is_contract_violation():
    with pytest.raises(ContractViolationError, match="CSS selector") as excinfo:
        parse_response('{"action": "invoice.create", "args": {"customer_email": "#email"}}')
    assert excinfo.value.errors


def test_parse_missing_args_is_contract_violation():
    with pytest.raises(ContractViolationError):
        parse_response('{"action": "invoice.create"}')


def test_parse_non_object_json_is_contract_violation():
    with pytest.raises(ContractViolationError):
        parse_response("```\n[1, 2, 3]\n```")


# ---------------------------------------------------------------------------
# Parsing: "none" sentinel
# ---------------------------------------------------------------------------


def test_parse_none_with_answer_is_direct_answer():
    result = parse_response('{"action": "none", "answer": "EUR and USD are supported."}')
    assert isinstance(result, AnswerPlan)
    assert result.text == "EUR and USD are supported."


def test_parse_none_with_error_raises_resolution_error():
    with pytest.raises(ResolutionError, match="No refund action"):
        parse_response('{"action": "none", "args": {}, "error": "No refund action on this page"}')


def test_parse_none_with_empty_answer_uses_default_message():
    with pytest.raises(ResolutionError, match="could not map request"):
        parse_response('{"action": "none", "answer": ""}')


# ---------------------------------------------------------------------------
# Parsing: navigation
# ---------------------------------------------------------------------------


def test_parse_navigate_directive():
    result = parse_response('{"navigate": "/invoices/"}')
    assert isinstance(result, NavigatePlan)
    assert result.page == "/invoices/"


def test_parse_navigate_full_url_reduces_to_path():
    result = parse_response('{"navigate": "http://localhost:5173/settings/"}')
    assert result.page == "/settings/"


def test_parse_navigate_action_quirk():
    result = parse_response('{"action": "navigate", "args": {"route": "settings/"}}')
    assert isinstance(result, NavigatePlan)
    assert result.page == "/settings/"


def test_parse_navigate_action_falls_back_to_any_path_value():
    result = parse_response('{"action": "navigate", "args": {"where": "/invoices/"}}')
    assert result.page == "/invoices/"


def test_parse_navigate_blank_target_is_contract_violation():
    with pytest.raises(ContractViolationError, match="Invalid navigate target"):
        parse_response('{"navigate": "   "}')


def test_parse_navigate_action_without_path_is_contract_violation():
    with pytest.raises(ContractViolationError, match="Invalid navigate request"):
        parse_response('{"action": "navigate", "args": {}}')


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/invoices/new", "/invoices/new"),
        ("invoices/new", "/invoices/new"),
        ("https://billing.example.com/invoices/", "/invoices/"),
        ("  ", None),
        ("../etc", None),
    ],
)
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected
