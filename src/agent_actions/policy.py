# policy.py
# Policy engine: a pure allow/deny decision over an action's declared
# risk, confirmation policy and required fields.
#
# Rules are evaluated in order and the first match wins. The confirmation
# gate always precedes the field check, so an unconfirmed caller never
# learns which fields a gated action requires.

from typing import Any

from agent_actions.models import AgentAction, PolicyCheckResult


def requires_confirmation(action: AgentAction, confirmed: bool | None) -> bool:
    return action.risk == "high" and action.confirmation == "required" and confirmed is not True


class PolicyEngine:
    """Stateless; one instance may be shared by any number of executions."""

    def check_execution(
        self,
        action: AgentAction,
        *,
        confirmed: bool | None = None,
        required_field_values: dict[str, Any] | None = None,
    ) -> PolicyCheckResult:
        if requires_confirmation(action, confirmed):
            return PolicyCheckResult(
                allowed=False,
                reason=f'Action "{action.title}" is high-risk and requires explicit confirmation',
            )

        values = required_field_values or {}
        for field in action.required_fields:
            if values.get(field) is None or values.get(field) == "":
                return PolicyCheckResult(
                    allowed=False,
                    reason=f'Required field "{field}" is missing or empty',
                )

        return PolicyCheckResult(allowed=True)
