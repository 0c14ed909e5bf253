# run.py
# Entry point. Config and wiring only, no logic lives here.
#
# Backend selection is read from the environment (see backends.py).
# Point AGENT_ACTIONS_MANIFEST at a site's agent manifest and
# AGENT_ACTIONS_BASE_URL at the running site.

import os

from dotenv import load_dotenv
from playwright.sync_api import sync_playwright
from rich.prompt import Confirm

from agent_actions import display
from agent_actions.adapter import SemanticAdapter
from agent_actions.backends import backend_from_env
from agent_actions.drivers import PlaywrightDriver
from agent_actions.errors import BackendError, ContractViolationError, PlannerExhaustedError, ResolutionError
from agent_actions.manifest import load_manifest
from agent_actions.planner import Planner
from agent_actions.session import AgentSession

load_dotenv()

MANIFEST_PATH = os.getenv("AGENT_ACTIONS_MANIFEST", "agent-manifest.json")
BASE_URL = os.getenv("AGENT_ACTIONS_BASE_URL", "http://localhost:5173")
LOG_DIR = os.getenv("AGENT_ACTIONS_LOG_DIR", "execution-logs")
START_PATH = "/invoices/new"

# Demo utterances against the billing sample site.
PROMPTS = [
    # Low risk: resolves straight to invoice.create and completes
    "Create an invoice for alice@example.com, 120 EUR",

    # Informational: answered from the catalog, nothing executes
    "What currencies can I invoice in?",

    # Off-page: resolves to a navigate directive
    "Show me all invoices",

    # High risk: stops at needs_confirmation until the operator agrees
    "Delete the workspace, I typed DELETE to confirm",
]


def main() -> None:
    manifest = load_manifest(MANIFEST_PATH)
    backend = backend_from_env()
    display.banner(backend.name(), manifest.site.name)

    if not backend.is_available():
        display.halt(f"{backend.name()} backend is not reachable.")
        return

    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=True)
        page = browser.new_page()
        page.goto(f"{BASE_URL}{START_PATH}", wait_until="networkidle")

        adapter = SemanticAdapter(PlaywrightDriver(page), manifest, base_url=BASE_URL)
        session = AgentSession(Planner(backend), adapter, log_dir=LOG_DIR)

        for prompt in PROMPTS:
            try:
                session.handle(prompt)
            except (PlannerExhaustedError, ResolutionError, ContractViolationError, BackendError) as exc:
                display.halt(str(exc))
                continue

            if session.pending is not None:
                if Confirm.ask(f"Run [bold]{session.pending.action}[/bold]?", default=False):
                    session.confirm()
                else:
                    session.decline()

        browser.close()


if __name__ == "__main__":
    main()
