"""Merging caller-supplied secrets into tool parameters.

Secrets are applied after reference resolution and only to the params sent to
an executor. They never reach frontend handler params, logs or the prompt.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Mapping

from ..schemas import SecretOverride


def find_overrides(tool: str, overrides: Mapping[str, SecretOverride]) -> List[SecretOverride]:
    """Overrides that apply to ``tool``: the base tool's first, then the instance's."""

    base = tool.split(":", 1)[0]
    found: List[SecretOverride] = []
    if base != tool and base in overrides:
        found.append(overrides[base])
    if tool in overrides:
        found.append(overrides[tool])
    return found


def merge_secret_override(params: Dict[str, Any], override: SecretOverride) -> Dict[str, Any]:
    """Return ``params`` with ``override`` merged in; the input is not mutated.

    Override values win. When both sides hold a map for the same key (e.g.
    ``headers``) the maps are merged one level deep. Dotted keys such as
    ``headers.Authorization`` address nested maps, creating them as needed.
    """

    merged = copy.deepcopy(params)
    for key, value in override.params.items():
        if "." in key:
            _set_path(merged, key.split("."), value)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = copy.deepcopy(value)

    if override.headers:
        headers = merged.get("headers")
        merged["headers"] = {**(headers if isinstance(headers, dict) else {}), **override.headers}
    return merged


def apply_secret_overrides(
    tool: str,
    params: Dict[str, Any],
    overrides: Mapping[str, SecretOverride],
) -> Dict[str, Any]:
    for override in find_overrides(tool, overrides):
        params = merge_secret_override(params, override)
    return params


def secret_keys(tool: str, overrides: Mapping[str, SecretOverride]) -> List[str]:
    """Names (never values) of the secrets applied to ``tool``, for logging."""

    keys: List[str] = []
    for override in find_overrides(tool, overrides):
        keys.extend(override.params.keys())
        keys.extend(f"headers.{name}" for name in override.headers)
    return keys


def _set_path(target: Dict[str, Any], path: List[str], value: Any) -> None:
    node = target
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = copy.deepcopy(value)
