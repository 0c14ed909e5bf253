import copy

import pytest

from agent_actions.drivers import MemoryDriver
from agent_actions.manifest import load_manifest
from agent_actions.models import ActionCatalog, DiscoveredAction, DiscoveredField

MANIFEST_DATA = {
    "version": "0.1",
    "site": {"name": "Billing", "origin": "http://localhost:5173"},
    "actions": {
        "invoice.create": {
            "title": "Create invoice",
            "scope": "invoices.write",
            "risk": "low",
            "confirmation": "optional",
            "idempotent": False,
            "inputSchema": {
                "type": "object",
                "required": ["customer_email", "amount", "currency"],
                "properties": {
                    "customer_email": {"type": "string", "format": "email", "x-semantic": "https://schema.org/email"},
                    "amount": {"type": "number", "minimum": 0},
                    "currency": {"type": "string", "enum": ["EUR", "USD"]},
                    "memo": {"type": "string"},
                },
            },
            "outputSchema": {"type": "object", "properties": {"invoice.create.status": {"type": "string"}}},
        },
        "invoice.send": {
            "title": "Send invoice",
            "scope": "invoices.write",
            "risk": "low",
            "confirmation": "review",
            "idempotent": True,
            "inputSchema": {
                "type": "object",
                "required": ["invoice_id"],
                "properties": {"invoice_id": {"type": "string"}},
            },
            "outputSchema": {"type": "object"},
        },
        "workspace.delete": {
            "title": "Delete workspace",
            "description": "Permanently deletes the workspace.",
            "scope": "workspace.admin",
            "risk": "high",
            "confirmation": "required",
            "idempotent": False,
            "inputSchema": {
                "type": "object",
                "required": ["delete_confirmation_text"],
                "properties": {"delete_confirmation_text": {"type": "string", "const": "DELETE"}},
            },
            "outputSchema": {"type": "object", "properties": {}},
        },
    },
    "data": {
        "invoice.list": {"title": "Invoices", "scope": "invoices.read", "outputSchema": {"type": "object"}},
    },
    "pages": {
        "/invoices/new": {"title": "Create Invoice", "actions": ["invoice.create", "invoice.send"]},
        "/invoices/": {"title": "Invoice List", "description": "All invoices", "data": ["invoice.list"]},
        "/settings/": {"title": "Settings", "actions": ["workspace.delete"]},
    },
}

INVOICE_ACTION = DiscoveredAction(
    action="invoice.create",
    danger="low",
    confirm="optional",
    scope="invoices.write",
    idempotent="false",
    fields=[
        DiscoveredField(field="customer_email", tag_name="input"),
        DiscoveredField(field="amount", tag_name="input"),
        DiscoveredField(field="currency", tag_name="select", options=["EUR", "USD"]),
    ],
    submit_action="invoice.create.submit",
)

SEND_ACTION = DiscoveredAction(
    action="invoice.send",
    danger="low",
    confirm="review",
    fields=[DiscoveredField(field="invoice_id")],
    submit_action="invoice.send.submit",
)

DELETE_ACTION = DiscoveredAction(
    action="workspace.delete",
    danger="high",
    confirm="required",
    scope="workspace.admin",
    fields=[DiscoveredField(field="delete_confirmation_text")],
)


@pytest.fixture
def manifest_data():
    return copy.deepcopy(MANIFEST_DATA)


@pytest.fixture
def manifest(manifest_data):
    return load_manifest(manifest_data)


@pytest.fixture
def catalog():
    return ActionCatalog(
        actions=[INVOICE_ACTION],
        url="http://localhost:5173/invoices/new",
        timestamp="2024-01-01T00:00:00.000Z",
    )


@pytest.fixture
def driver():
    return MemoryDriver(
        pages={
            "/invoices/new": [INVOICE_ACTION, SEND_ACTION],
            "/invoices/": [],
            "/settings/": [DELETE_ACTION],
        },
        statuses={
            "invoice.create.submit": ("invoice.create.status", "Invoice INV-001 created"),
            "workspace.delete": ("workspace.delete.status", "Workspace deleted"),
        },
        start_url="http://localhost:5173/invoices/new",
    )
