# session.py
# End-to-end pipeline for one conversation:
#   utterance → discover catalog → Planner → PlannerResult
#             → SemanticAdapter.execute → RuntimeResponse
#
# Confirmation only ever comes from the caller via confirm(). A "confirmed"
# flag emitted by the model is ignored. Each session owns its own adapter
# and shares no mutable state with other sessions.

from dataclasses import dataclass, field
from pathlib import Path

from agent_actions import display
from agent_actions.adapter import SemanticAdapter
from agent_actions.logger import save_log
from agent_actions.models import (
    ActionPlan,
    AnswerPlan,
    NavigatePlan,
    NeedsConfirmationResponse,
    PlannerRequest,
    PlannerResult,
    RuntimeResponse,
)
from agent_actions.planner import Planner


@dataclass
class Turn:
    """Outcome of one utterance. ``response`` is set only for action plans."""

    plan: PlannerResult
    response: RuntimeResponse | None = None
    log_paths: list[Path] = field(default_factory=list)


class AgentSession:
    def __init__(
        self,
        planner: Planner,
        adapter: SemanticAdapter,
        *,
        site_aware: bool = True,
        log_dir: str | Path | None = None,
    ) -> None:
        self._planner = planner
        self._adapter = adapter
        self._site_aware = site_aware
        self._log_dir = Path(log_dir) if log_dir else None
        self.pending: PlannerRequest | None = None

    def handle(self, utterance: str, page_data: str | None = None) -> Turn:
        """
        Plan and act on one utterance.

        Planner errors (PlannerExhaustedError, BackendError, ResolutionError,
        ContractViolationError) propagate to the caller.
        """
        display.utterance_received(utterance)
        catalog = self._adapter.discover()
        manifest = self._adapter.manifest if self._site_aware else None
        plan = self._planner.plan(utterance, catalog, manifest=manifest, page_data=page_data)

        if isinstance(plan, AnswerPlan):
            display.final_answer(plan.text)
            return Turn(plan=plan)

        if isinstance(plan, NavigatePlan):
            self._adapter.navigate(plan.page)
            display.navigated(plan.page)
            return Turn(plan=plan)

        if isinstance(plan, ActionPlan):
            return self._run(plan, confirmed=None)

        raise TypeError(f"unknown planner result {type(plan).__name__}")

    def confirm(self) -> Turn:
        """Re-run the request that is awaiting confirmation, with confirmed=True."""
        if self.pending is None:
            raise RuntimeError("No action is awaiting confirmation")
        request, self.pending = self.pending, None
        return self._run(ActionPlan(request=request), confirmed=True)

    def decline(self) -> None:
        self.pending = None

    def _run(self, plan: ActionPlan, confirmed: bool | None) -> Turn:
        request = plan.request
        response = self._adapter.execute(request.action, request.args, confirmed=confirmed)

        if isinstance(response, NeedsConfirmationResponse):
            self.pending = request

        turn = Turn(plan=plan, response=response)
        if self._log_dir is not None and response.log is not None:
            turn.log_paths.append(save_log(response.log, self._log_dir))
        return turn
