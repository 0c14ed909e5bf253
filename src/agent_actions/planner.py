# planner.py
# Planner: turns a natural-language utterance plus the current page's action
# catalog into one PlannerResult.
#
# The model only decides intent and arguments; the executor decides whether
# and how anything runs.
#
# Error classification:
#   ParseError              → retried, bounded by AttemptBudget
#   ContractViolationError  → propagated (deterministic, not transient)
#   ResolutionError         → propagated (model could not map the request)
#   BackendError            → propagated immediately (service is down)
#
# The protocol's planner contract lists ContractViolationError as retryable,
# while its parser contract and error taxonomy mark it terminal. It is
# terminal here (test_plan_does_not_retry_contract_violations).

from agent_actions import display
from agent_actions.backends import GenerationBackend
from agent_actions.errors import BackendError, ParseError, PlannerExhaustedError
from agent_actions.models import ActionCatalog, AgentManifest, PlannerResult
from agent_actions.parser import parse_response
from agent_actions.prompts import build_site_aware_prompt, build_system_prompt, build_user_prompt, summarize_site

MAX_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Attempt state machine
# ---------------------------------------------------------------------------


class AttemptBudget:
    """
    Bounded retry state: running → succeeded | exhausted.

    The failure counter starts at 0 and is incremented per retryable failure.
    Once it reaches ``max_attempts`` the budget is exhausted.
    """

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"

    def __init__(self, max_attempts: int = MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.failures = 0
        self.last_error: Exception | None = None
        self.state = self.RUNNING

    @property
    def running(self) -> bool:
        return self.state == self.RUNNING

    @property
    def attempt(self) -> int:
        """1-based number of the attempt currently in progress."""
        return self.failures + 1

    def record_success(self) -> None:
        self._require_running()
        self.state = self.SUCCEEDED

    def record_failure(self, error: Exception) -> bool:
        """Count a retryable failure. Returns True if another attempt is allowed."""
        self._require_running()
        self.failures += 1
        self.last_error = error
        if self.failures >= self.max_attempts:
            self.state = self.EXHAUSTED
        return self.running

    def exhausted_error(self) -> PlannerExhaustedError:
        return PlannerExhaustedError(self.max_attempts, self.last_error)

    def _require_running(self) -> None:
        if not self.running:
            raise RuntimeError(f"attempt budget is already {self.state}")


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------


class Planner:
    """
    Backend-agnostic planner.

    Example:
        planner = Planner(OllamaBackend(model="llama3.2"))
        result = planner.plan("Create an invoice for alice@example.com, 120 EUR", catalog)
    """

    def __init__(self, backend: GenerationBackend, max_attempts: int = MAX_ATTEMPTS) -> None:
        self._backend = backend
        self._max_attempts = max_attempts

    @property
    def backend(self) -> GenerationBackend:
        return self._backend

    def build_prompts(
        self,
        utterance: str,
        catalog: ActionCatalog,
        manifest: AgentManifest | None = None,
        page_data: str | None = None,
    ) -> tuple[str, str]:
        """Return (system_prompt, user_prompt). Site-aware when a manifest is given."""
        if manifest is not None:
            others, pages = summarize_site(manifest, catalog)
            system_prompt = build_site_aware_prompt(catalog, others, pages, page_data)
        else:
            system_prompt = build_system_prompt(catalog, page_data)
        return system_prompt, build_user_prompt(utterance)

    def plan(
        self,
        utterance: str,
        catalog: ActionCatalog,
        *,
        manifest: AgentManifest | None = None,
        page_data: str | None = None,
    ) -> PlannerResult:
        """
        Resolve ``utterance`` against ``catalog``.

        Every attempt reuses the same prompts. Raises PlannerExhaustedError
        after ``max_attempts`` unparseable responses.
        """
        system_prompt, user_prompt = self.build_prompts(utterance, catalog, manifest, page_data)
        budget = AttemptBudget(self._max_attempts)
        backend_name = self._backend.name()

        while budget.running:
            display.planner_attempt(budget.attempt, budget.max_attempts, backend_name)

            try:
                raw = self._backend.generate(user_prompt, system_prompt, json_mode=True)
            except BackendError as exc:
                display.backend_failure(exc)
                raise

            try:
                result = parse_response(raw)
            except ParseError as exc:
                display.planner_retry(budget.attempt, budget.max_attempts, exc)
                budget.record_failure(exc)
                continue

            budget.record_success()
            display.plan_resolved(result)
            return result

        display.planner_exhausted(budget.max_attempts)
        raise budget.exhausted_error()
