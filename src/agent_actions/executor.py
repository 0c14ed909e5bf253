# executor.py
# Action executor: the gate between a planner request and any side effect.
#
# State machine:
#   validating → policy_checking → interacting → terminal status
#
#   validating      contract + schema check; failure ends in validation_error
#                   or missing_required_fields, nothing touched
#   policy_checking confirmation / required-field gate; denial ends in
#                   needs_confirmation or missing_required_fields
#   interacting     navigate → fill (per page field) → click → read_status
#                   (review actions stop after fill: awaiting_review)
#
# Navigation happens only when the manifest maps the action to a page;
# otherwise the driver stays where it is. Fields and the submit control
# come from the action as discovered on the page the driver is on.
#
# A validate and a policy_check step are always logged before any
# side-effecting step. Every outcome is a RuntimeResponse; nothing raises.

from typing import Any

from jsonschema.exceptions import SchemaError

from agent_actions import display
from agent_actions.contracts import validate_planner_request
from agent_actions.drivers import BrowserDriver
from agent_actions.errors import ActionNotFoundError, ExecutionFault
from agent_actions.logger import ExecutionLogger
from agent_actions.manifest import (
    coerce_and_validate,
    get_action,
    missing_required,
    page_for_action,
    validate_output,
)
from agent_actions.models import (
    ActionCatalog,
    AgentAction,
    AgentManifest,
    AwaitingReviewResponse,
    CompletedResponse,
    ConfirmationMetadata,
    DiscoveredAction,
    ExecutionErrorResponse,
    MissingFieldsResponse,
    NeedsConfirmationResponse,
    PlannerRequest,
    RuntimeResponse,
    ValidationErrorResponse,
)
from agent_actions.policy import PolicyEngine, requires_confirmation


class ActionExecutor:
    """
    Runs one validated request against one driver.

    A driver is exclusively owned by one in-flight execution; concurrent
    executions need distinct executors over distinct drivers.

    Example:
        executor = ActionExecutor(driver, manifest, base_url="http://localhost:5173")
        response = executor.execute(PlannerRequest(action="invoice.create", args={...}))
    """

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

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def execute(
        self,
        request: PlannerRequest | dict[str, Any],
        *,
        confirmed: bool | None = None,
        catalog: ActionCatalog | None = None,
    ) -> RuntimeResponse:
        """
        Execute ``request``. ``confirmed`` overrides the request's own flag
        when given. ``catalog``, when it describes the page the driver is on,
        supplies the action's fields and submit control without rediscovery.
        """
        data = request.model_dump(exclude_none=True) if isinstance(request, PlannerRequest) else dict(request)
        action_name = str(data.get("action", ""))
        if confirmed is not None:
            data["confirmed"] = confirmed
        logger = ExecutionLogger(action_name, mode="ui")

        # ── validating ─────────────────────────────────────────────
        contract = validate_planner_request(data)
        if not contract.valid:
            return self._validation_error(logger, action_name, contract.errors)

        try:
            action = get_action(self._manifest, action_name)
        except ActionNotFoundError as exc:
            return self._validation_error(logger, action_name, [str(exc)])

        # The validate step leads the log; the coercions it applied follow it.
        try:
            result, args, coercions = coerce_and_validate(action, data["args"])
        except SchemaError as exc:
            return self._validation_error(logger, action_name, [f"Invalid input schema: {exc.message}"])
        display.coercions_applied(coercions)

        if not result.valid:
            detail = ", ".join(result.errors)
            logger.validate(f"FAILED: {detail}")
            logger.coerce(coercions)
            display.validation_failed(action_name, result.errors)
            if result.missing_fields:
                return self._finish(
                    MissingFieldsResponse(
                        action=action_name,
                        missing_fields=result.missing_fields,
                        error=detail,
                        log=logger.to_log(),
                    )
                )
            return self._finish(ValidationErrorResponse(action=action_name, error=detail, log=logger.to_log()))

        logger.validate("PASSED")
        logger.coerce(coercions)
        display.validation_passed(action_name)

        # ── policy_checking ────────────────────────────────────────
        is_confirmed = data.get("confirmed")
        decision = self._policy.check_execution(action, confirmed=is_confirmed, required_field_values=args)
        display.policy_decision(action_name, decision)

        if not decision.allowed:
            logger.policy_check("BLOCKED", decision.reason)
            if requires_confirmation(action, is_confirmed):
                return self._finish(
                    NeedsConfirmationResponse(
                        action=action_name,
                        confirmation_metadata=ConfirmationMetadata(
                            action=action_name,
                            risk=action.risk,
                            scope=action.scope,
                            title=action.title,
                        ),
                        error=decision.reason,
                        log=logger.to_log(),
                    )
                )
            return self._finish(
                MissingFieldsResponse(
                    action=action_name,
                    missing_fields=missing_required(action, args) or action.required_fields,
                    error=decision.reason,
                    log=logger.to_log(),
                )
            )

        logger.policy_check("PASSED")

        # ── interacting ────────────────────────────────────────────
        try:
            return self._interact(action_name, action, args, logger, catalog)
        except ExecutionFault as exc:
            display.interaction_fault(exc)
            return self._finish(ExecutionErrorResponse(action=action_name, error=str(exc), log=logger.to_log()))

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def _interact(
        self,
        action_name: str,
        action: AgentAction,
        args: dict[str, Any],
        logger: ExecutionLogger,
        catalog: ActionCatalog | None,
    ) -> RuntimeResponse:
        display.interaction_start(action_name)

        page = page_for_action(self._manifest, action_name)
        if page is not None:
            url = f"{self._base_url}{page}"
            logger.navigate(url)
            self._driver.navigate(url)
            display.navigated(url)

        discovered = self._discovered(action_name, catalog)

        for field, value in self._fill_plan(discovered, args):
            logger.fill(field, value)
            self._driver.fill(field, value)
            display.filled(field, value)

        if action.confirmation == "review":
            # Fields are staged; the human submits.
            return self._finish(AwaitingReviewResponse(action=action_name, log=logger.to_log()))

        submit = discovered.submit_action if discovered is not None and discovered.submit_action else action_name
        logger.click(submit)
        self._driver.click(submit)
        display.clicked(submit)

        status = self._driver.read_status()
        if status is None:
            logger.read_status("", "")
            if action.output_schema.get("required"):
                raise ExecutionFault(f'No status was reported after "{submit}"')
            return self._finish(CompletedResponse(action=action_name, log=logger.to_log()))

        output, text = status
        logger.read_status(output, text)
        display.status_read(output, text)

        try:
            check = validate_output(action, {output: text})
        except SchemaError as exc:
            raise ExecutionFault(f"Invalid output schema: {exc.message}") from exc
        if not check.valid:
            raise ExecutionFault(f"Result does not match output schema: {', '.join(check.errors)}")

        return self._finish(CompletedResponse(action=action_name, result=text, log=logger.to_log()))

    def _discovered(self, action_name: str, catalog: ActionCatalog | None) -> DiscoveredAction | None:
        """The action as annotated on the page the driver is on now."""
        if catalog is not None and catalog.url == self._driver.current_url():
            return catalog.find(action_name)
        return next((a for a in self._driver.discover_actions() if a.action == action_name), None)

    @staticmethod
    def _fill_plan(discovered: DiscoveredAction | None, args: dict[str, Any]) -> list[tuple[str, Any]]:
        # Unknown page: every arg. Known page: its fields, in page order, that have a value.
        if discovered is None or not discovered.fields:
            return list(args.items())
        return [(f.field, args[f.field]) for f in discovered.fields if f.field in args]

    # ------------------------------------------------------------------
    # Terminal states
    # ------------------------------------------------------------------

    def _validation_error(self, logger: ExecutionLogger, action_name: str, errors: list[str]) -> RuntimeResponse:
        detail = ", ".join(errors)
        logger.validate(f"FAILED: {detail}")
        display.validation_failed(action_name or "(unnamed)", errors)
        return self._finish(ValidationErrorResponse(action=action_name, error=detail, log=logger.to_log()))

    def _finish(self, response: RuntimeResponse) -> RuntimeResponse:
        detail = getattr(response, "error", None) or getattr(response, "result", None)
        display.runtime_response(response.status, response.action, detail)
        if response.log is not None:
            display.execution_log(response.log)
        return response
