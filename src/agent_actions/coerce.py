# coerce.py
# Argument coercion: repairs common model type mismatches against an
# action's input schema before it is validated.
#
# Never mutates the caller's args. Every change is reported as a Coercion so
# the execution log shows exactly what was rewritten.

import math
from typing import Any, NamedTuple

from agent_actions.models import Coercion


class CoerceResult(NamedTuple):
    args: dict[str, Any]
    coercions: list[Coercion]


def _to_number(value: str) -> int | float | None:
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_args(args: dict[str, Any], input_schema: dict[str, Any]) -> CoerceResult:
    """
    Coerce model-produced args to the types declared in ``input_schema``.

    Rules:
      - null              → field removed (model null means "not provided")
      - string → number   when the property type is "number"
      - string → integer  when the property type is "integer" and the value is integral
      - string → boolean  when the property type is "boolean" ("true"/"false" only)
      - enum case-fix     case-insensitive match against the property's enum
    """
    properties: dict[str, Any] = input_schema.get("properties") or {}
    coerced = dict(args)
    coercions: list[Coercion] = []

    if not properties:
        return CoerceResult(coerced, coercions)

    for key, value in args.items():
        if value is None:
            del coerced[key]
            coercions.append(Coercion(field=key, from_value=None, to_value=None, rule="null→delete"))
            continue

        prop = properties.get(key)
        if not prop or not isinstance(value, str):
            continue

        prop_type = prop.get("type")

        if prop_type == "number":
            number = _to_number(value)
            if number is not None:
                coerced[key] = number
                coercions.append(Coercion(field=key, from_value=value, to_value=number, rule="string→number"))

        elif prop_type == "integer":
            number = _to_number(value)
            if number is not None and float(number).is_integer():
                coerced[key] = int(number)
                coercions.append(Coercion(field=key, from_value=value, to_value=int(number), rule="string→integer"))

        elif prop_type == "boolean" and value in ("true", "false"):
            flag = value == "true"
            coerced[key] = flag
            coercions.append(Coercion(field=key, from_value=value, to_value=flag, rule="string→boolean"))

        enum = prop.get("enum")
        if enum and isinstance(coerced[key], str):
            current = coerced[key]
            match = next((e for e in enum if isinstance(e, str) and e.lower() == current.lower()), None)
            if match is not None and match != current:
                coerced[key] = match
                coercions.append(Coercion(field=key, from_value=current, to_value=match, rule="enum-case-fix"))

    return CoerceResult(coerced, coercions)
