# errors.py
# Exception taxonomy for the planning and execution pipeline.
#
# Policy denials are NOT exceptions; they are RuntimeResponse variants.
# Only the planner's retry loop ever catches ParseError.


class ParseError(Exception):
    """Raised when raw model output holds no interpretable JSON object. Retryable."""


class ContractViolationError(Exception):
    """Raised when parsed output is valid JSON but breaks the request contract. Not retried."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ResolutionError(Exception):
    """Raised when the model reports it could not map the utterance to any action. Not retried."""


class BackendError(Exception):
    """Raised when the generation service itself fails (transport or API). Not retried."""


class PlannerExhaustedError(Exception):
    """Raised when every planning attempt produced unparseable output."""

    def __init__(self, max_attempts: int, last_error: Exception | None = None) -> None:
        detail = f": {last_error}" if last_error else ""
        super().__init__(f"Planner failed after {max_attempts} attempts{detail}")
        self.max_attempts = max_attempts
        self.last_error = last_error


class ExecutionFault(Exception):
    """Raised by a browser driver when an interaction step fails."""


class ManifestError(Exception):
    """Raised when a manifest cannot be loaded or fails its own schema."""


class ActionNotFoundError(KeyError):
    """Raised when an action name is absent from the manifest."""

    def __init__(self, action_name: str) -> None:
        super().__init__(action_name)
        self.action_name = action_name

    def __str__(self) -> str:
        return f'Action "{self.action_name}" not found in manifest'
