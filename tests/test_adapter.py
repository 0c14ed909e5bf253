from agent_actions.adapter import SemanticAdapter
from agent_actions.drivers import MemoryDriver
from agent_actions.manifest import load_manifest
from agent_actions.models import AgentManifest

INVOICE_ARGS = {"customer_email": "alice@example.com", "amount": 120, "currency": "EUR"}


def test_detect_annotated_page(driver, manifest):
    assert SemanticAdapter(driver, manifest).detect() is True


def test_detect_plain_page(manifest):
    assert SemanticAdapter(MemoryDriver(start_url="http://localhost:5173/about"), manifest).detect() is False


def test_discover_returns_catalog_for_current_page(driver, manifest):
    catalog = SemanticAdapter(driver, manifest).discover()

    assert catalog.url == "http://localhost:5173/invoices/new"
    assert [a.action for a in catalog.actions] == ["invoice.create", "invoice.send"]
    assert catalog.find("invoice.create").submit_action == "invoice.create.submit"
    assert catalog.timestamp.endswith("Z")


def test_navigate_joins_base_url(driver, manifest):
    adapter = SemanticAdapter(driver, manifest)
    adapter.navigate("/settings/")

    assert driver.url == "http://localhost:5173/settings/"
    assert [a.action for a in adapter.discover().actions] == ["workspace.delete"]


def test_validate_accepts_coercible_args(driver, manifest):
    result = SemanticAdapter(driver, manifest).validate("invoice.create", {**INVOICE_ARGS, "amount": "120"})
    assert result.valid is True
    assert driver.calls == []


def test_validate_reports_missing_fields(driver, manifest):
    result = SemanticAdapter(driver, manifest).validate("invoice.create", {"customer_email": "alice@example.com"})
    assert result.valid is False
    assert result.missing_fields == ["amount", "currency"]


def test_validate_rejects_selector_values(driver, manifest):
    result = SemanticAdapter(driver, manifest).validate("invoice.create", {"customer_email": "[name=email]"})
    assert result.valid is False
    assert "CSS selector" in result.errors[0]


def test_validate_unknown_action(driver, manifest):
    result = SemanticAdapter(driver, manifest).validate("invoice.refund", {})
    assert result.errors == ['Action "invoice.refund" not found in manifest']


def test_execute_runs_through_driver(driver, manifest):
    response = SemanticAdapter(driver, manifest).execute("invoice.create", INVOICE_ARGS)
    assert response.status == "completed"
    assert response.result == "Invoice INV-001 created"


def test_execute_passes_confirmation(driver, manifest):
    adapter = SemanticAdapter(driver, manifest)
    args = {"delete_confirmation_text": "DELETE"}

    assert adapter.execute("workspace.delete", args).status == "needs_confirmation"
    assert adapter.execute("workspace.delete", args, confirmed=True).status == "completed"


def test_execute_against_other_manifest(driver, manifest_data, manifest):
    manifest_data["actions"]["invoice.create"]["risk"] = "high"
    manifest_data["actions"]["invoice.create"]["confirmation"] = "required"
    strict = load_manifest(manifest_data)

    response = SemanticAdapter(driver, manifest).execute("invoice.create", INVOICE_ARGS, manifest=strict)
    assert response.status == "needs_confirmation"


def test_validate_reports_invalid_input_schema(driver, manifest_data):
    manifest_data["actions"]["invoice.create"]["inputSchema"]["properties"]["amount"] = {"type": "numbr"}
    manifest = AgentManifest.model_validate(manifest_data)

    result = SemanticAdapter(driver, manifest).validate("invoice.create", INVOICE_ARGS)

    assert result.valid is False
    assert result.errors[0].startswith("Invalid input schema")
    assert driver.calls == []
