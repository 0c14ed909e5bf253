# adapter.py
# Runtime adapter: the four-operation capability (detect, discover,
# validate, execute) over any BrowserDriver.
#
# SemanticAdapter(PlaywrightDriver(page), ...) is the browser-automation
# adapter; SemanticAdapter(MemoryDriver(...), ...) is the headless double.

from datetime import datetime, timezone
from typing import Any, Protocol

from jsonschema.exceptions import SchemaError

from agent_actions.contracts import validate_planner_request
from agent_actions.drivers import BrowserDriver
from agent_actions.errors import ActionNotFoundError
from agent_actions.executor import ActionExecutor
from agent_actions.manifest import coerce_and_validate, get_action
from agent_actions.models import ActionCatalog, AgentManifest, RuntimeResponse, ValidationResult
from agent_actions.policy import PolicyEngine


class RuntimeAdapter(Protocol):
    def detect(self) -> bool: ...

    def discover(self) -> ActionCatalog: ...

    def validate(self, action_name: str, args: dict[str, Any], manifest: AgentManifest | None = None) -> ValidationResult: ...

    def execute(
        self,
        action_name: str,
        args: dict[str, Any],
        *,
        confirmed: bool | None = None,
        manifest: AgentManifest | None = None,
    ) -> RuntimeResponse: ...


class SemanticAdapter:
    def __init__(
        self,
        driver: BrowserDriver,
        manifest: AgentManifest,
        base_url: str | None = None,
        policy: PolicyEngine | None = None,
    ) -> None:
        self._driver = driver
        self._manifest = manifest
        self._base_url = (base_url or manifest.site.origin).rstrip("/")
        self._policy = policy or PolicyEngine()

    @property
    def manifest(self) -> AgentManifest:
        return self._manifest

    def detect(self) -> bool:
        """True if the current page carries any semantic annotations."""
        return self._driver.has_semantic_elements()

    def discover(self) -> ActionCatalog:
        return ActionCatalog(
            actions=self._driver.discover_actions(),
            url=self._driver.current_url(),
            timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        )

    def navigate(self, path: str) -> None:
        self._driver.navigate(f"{self._base_url}{path}")

    def validate(self, action_name: str, args: dict[str, Any], manifest: AgentManifest | None = None) -> ValidationResult:
        """Contract and schema check without touching the page."""
        contract = validate_planner_request({"action": action_name, "args": args})
        if not contract.valid:
            return contract
        try:
            action = get_action(manifest or self._manifest, action_name)
        except ActionNotFoundError as exc:
            return ValidationResult(valid=False, errors=[str(exc)])
        try:
            result, _, _ = coerce_and_validate(action, args)
        except SchemaError as exc:
            return ValidationResult(valid=False, errors=[f"Invalid input schema: {exc.message}"])
        return result

    def execute(
        self,
        action_name: str,
        args: dict[str, Any],
        *,
        confirmed: bool | None = None,
        manifest: AgentManifest | None = None,
    ) -> RuntimeResponse:
        executor = ActionExecutor(self._driver, manifest or self._manifest, self._base_url, self._policy)
        request: dict[str, Any] = {"action": action_name, "args": args}
        if confirmed is not None:
            request["confirmed"] = confirmed
        return executor.execute(request)
