# manifest.py
# Manifest loading, action lookup and JSON-Schema validation of action
# inputs and outputs.
#
# Compiled schema validators are cached process-wide. They are read-only
# after construction and safe to share between concurrent executions.

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import FormatChecker
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for
from pydantic import ValidationError

from agent_actions.coerce import coerce_args
from agent_actions.errors import ActionNotFoundError, ManifestError
from agent_actions.models import AgentAction, AgentManifest, Coercion, ValidationResult


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_manifest(source: dict[str, Any] | str | Path) -> AgentManifest:
    """
    Build an AgentManifest from a parsed dict or a path to a JSON file.
    Raises ManifestError if the file is unreadable or the content is invalid.
    """
    if isinstance(source, (str, Path)):
        try:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ManifestError(f"Could not read manifest {source}: {exc}") from exc
    else:
        data = source

    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a non-null object")
    missing = [key for key in ("version", "site", "actions") if key not in data]
    if missing:
        raise ManifestError(f"Manifest missing required fields: {', '.join(missing)}")

    try:
        manifest = AgentManifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestError(f"Manifest is invalid: {exc}") from exc

    for name, action in manifest.actions.items():
        for label, schema in (("inputSchema", action.input_schema), ("outputSchema", action.output_schema)):
            if not schema:
                continue
            try:
                _validator_for(schema)
            except SchemaError as exc:
                raise ManifestError(f'Action "{name}" has an invalid {label}: {exc.message}') from exc
    return manifest


def get_action(manifest: AgentManifest, action_name: str) -> AgentAction:
    try:
        return manifest.actions[action_name]
    except KeyError:
        raise ActionNotFoundError(action_name) from None


def page_for_action(manifest: AgentManifest, action_name: str) -> str | None:
    """Return the route of the first page that hosts ``action_name``."""
    for route, page in manifest.pages.items():
        if action_name in page.actions:
            return route
    return None


# ---------------------------------------------------------------------------
# Schema validation
# ---------------------------------------------------------------------------


@lru_cache(maxsize=256)
def _compiled(schema_key: str):
    schema = json.loads(schema_key)
    cls = validator_for(schema)
    cls.check_schema(schema)
    return cls(schema, format_checker=FormatChecker())


def _validator_for(schema: dict[str, Any]):
    # Schemas are dicts; the canonical JSON text is the cache key.
    return _compiled(json.dumps(schema, sort_keys=True))


def _schema_errors(schema: dict[str, Any], instance: Any) -> list[str]:
    validator = _validator_for(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    return [f"/{'/'.join(str(p) for p in err.path)}: {err.message}" for err in errors]


def missing_required(action: AgentAction, values: dict[str, Any]) -> list[str]:
    """Required fields that are absent, null or an empty string."""
    return [name for name in action.required_fields if values.get(name) is None or values.get(name) == ""]


def validate_input(action: AgentAction, values: dict[str, Any]) -> ValidationResult:
    if not action.input_schema:
        return ValidationResult(valid=True)

    missing = missing_required(action, values)
    errors = _schema_errors(action.input_schema, values)

    if missing:
        return ValidationResult(
            valid=False,
            errors=[f"Missing required fields: {', '.join(missing)}", *errors],
            missing_fields=missing,
        )
    if errors:
        return ValidationResult(valid=False, errors=errors)
    return ValidationResult(valid=True)


def validate_output(action: AgentAction, result: dict[str, Any]) -> ValidationResult:
    if not action.output_schema:
        return ValidationResult(valid=True)
    errors = _schema_errors(action.output_schema, result)
    return ValidationResult(valid=not errors, errors=errors)


def coerce_and_validate(
    action: AgentAction, values: dict[str, Any]
) -> tuple[ValidationResult, dict[str, Any], list[Coercion]]:
    coerced, coercions = coerce_args(values, action.input_schema)
    return validate_input(action, coerced), coerced, coercions
