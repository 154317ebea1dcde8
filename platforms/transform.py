"""Pure reshaping helpers applied to decoded platform responses."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .errors import PlatformApiError

_SNAKE = re.compile(r"_([a-z])")


def to_camel_case(key: str) -> str:
    """Convert ``snake_case`` to ``camelCase``."""
    return _SNAKE.sub(lambda match: match.group(1).upper(), key)


def camelize(obj: Any) -> Any:
    """Rename the top-level keys of a dict (or each dict in a list)."""
    if isinstance(obj, list):
        return [camelize(item) for item in obj]
    if isinstance(obj, dict):
        return {to_camel_case(str(key)): value for key, value in obj.items()}
    return obj


def unwrap(payload: Any, key: str = "data", default: Any = None) -> Any:
    """Extract ``payload[key]`` from a response envelope."""
    if isinstance(payload, Mapping):
        return payload.get(key, default)
    return default


def unwrap_cloudflare(payload: Any) -> Any:
    """Return ``result`` from a Cloudflare envelope, raising on ``success: false``."""
    if not isinstance(payload, Mapping):
        raise PlatformApiError("Cloudflare", "Malformed response")
    if not payload.get("success"):
        errors = payload.get("errors") or []
        message = errors[0].get("message") if errors and isinstance(errors[0], Mapping) else None
        raise PlatformApiError("Cloudflare", message or "Unknown error")
    return payload.get("result")


def unwrap_graphql(payload: Any, platform: str) -> Any:
    """Return ``data`` from a GraphQL response, raising on the first error."""
    if not isinstance(payload, Mapping):
        raise PlatformApiError(platform, "Malformed response")
    errors = payload.get("errors")
    if errors:
        first = errors[0]
        raise PlatformApiError(platform, first.get("message", str(first)) if isinstance(first, Mapping) else str(first))
    return payload.get("data")


def edges(connection: Optional[Mapping[str, Any]]) -> List[Any]:
    """Flatten a GraphQL ``{edges: [{node: ...}]}`` connection."""
    if not connection:
        return []
    return [edge.get("node") for edge in connection.get("edges", [])]


def to_form_data(obj: Mapping[str, Any], prefix: Optional[str] = None) -> Dict[str, str]:
    """Flatten nested data into Stripe-style ``a[b][0]`` form fields."""
    result: Dict[str, str] = {}
    for key, value in obj.items():
        full_key = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            result.update(to_form_data(value, full_key))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                if isinstance(item, Mapping):
                    result.update(to_form_data(item, f"{full_key}[{index}]"))
                else:
                    result[f"{full_key}[{index}]"] = _form_value(item)
        else:
            result[full_key] = _form_value(value)
    return result


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = [
    "camelize",
    "edges",
    "to_camel_case",
    "to_form_data",
    "unwrap",
    "unwrap_cloudflare",
    "unwrap_graphql",
]
