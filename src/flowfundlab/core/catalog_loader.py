"""Utilities for loading network documents from YAML/JSON sources."""

from __future__ import annotations

import json
from collections.abc import Mapping
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

from .accounts import Account
from .network import FlowNetwork, Network
from .nodes import FlowNode

__all__ = [
    "CatalogError",
    "load_network",
]


class CatalogError(ValueError):
    """Raised when a network document cannot be parsed."""


def load_network(
    source: str | Path | Mapping[str, Any], *, format: str | None = None
) -> Network | FlowNetwork:
    """
    Parse a network document from YAML/JSON/dict.

    A document with an ``accounts`` list yields a discrete ``Network``; one
    with a ``nodes`` list yields a continuous ``FlowNetwork``. Values from an
    optional ``defaults`` mapping are merged into every entry. Only structure
    is checked here; range checks belong to the validator.
    """
    mapping, label = _read_source(source, format=format)
    defaults = _ensure_dict(mapping.get("defaults"), f"{label}::defaults")
    name = mapping.get("name", Path(label).stem if label != "<mapping>" else "network")
    name = _coerce_str(name, f"{label}::name")

    has_accounts = "accounts" in mapping
    has_nodes = "nodes" in mapping
    if has_accounts == has_nodes:
        raise CatalogError(f"{label}: document must define exactly one of 'accounts' or 'nodes'")

    if has_accounts:
        accounts = _normalize_accounts(mapping["accounts"], defaults, label)
        return Network(name=name, accounts=tuple(accounts))
    nodes = _normalize_nodes(mapping["nodes"], defaults, label)
    return FlowNetwork(name=name, nodes=tuple(nodes))


def _read_source(
    source: str | Path | Mapping[str, Any], *, format: str | None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, Mapping):
        return deepcopy(dict(source)), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise CatalogError(f"Unsupported network format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise CatalogError(f"Could not parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogError(f"Network document root must be a mapping (source={path})")
    return data, str(path)


def _normalize_accounts(
    raw: Any, defaults: dict[str, Any], label: str
) -> list[Account]:
    accounts: list[Account] = []
    for idx, entry in enumerate(_ensure_list(raw, f"{label}::accounts")):
        ctx = f"{label}::accounts[{idx}]"
        data = _merge_entry(defaults, _ensure_dict(entry, ctx))
        member_id = _coerce_str(data.get("id"), f"{ctx}.id")
        accounts.append(
            Account(
                id=member_id,
                name=_coerce_name(data.get("name"), member_id, ctx),
                balance=_coerce_number(data.get("balance", 0.0), f"{ctx}.balance"),
                min_threshold=_required_number(data, "min_threshold", ctx),
                max_threshold=_required_number(data, "max_threshold", ctx),
                allocations=_coerce_allocations(data.get("allocations"), ctx),
            )
        )
    return accounts


def _normalize_nodes(raw: Any, defaults: dict[str, Any], label: str) -> list[FlowNode]:
    nodes: list[FlowNode] = []
    for idx, entry in enumerate(_ensure_list(raw, f"{label}::nodes")):
        ctx = f"{label}::nodes[{idx}]"
        data = _merge_entry(defaults, _ensure_dict(entry, ctx))
        member_id = _coerce_str(data.get("id"), f"{ctx}.id")
        nodes.append(
            FlowNode(
                id=member_id,
                name=_coerce_name(data.get("name"), member_id, ctx),
                external_inflow=_coerce_number(
                    data.get("external_inflow", 0.0), f"{ctx}.external_inflow"
                ),
                min_threshold=_required_number(data, "min_threshold", ctx),
                max_threshold=_required_number(data, "max_threshold", ctx),
                allocations=_coerce_allocations(data.get("allocations"), ctx),
            )
        )
    return nodes


def _merge_entry(defaults: dict[str, Any], entry: dict[str, Any]) -> dict[str, Any]:
    merged = deepcopy(defaults)
    merged.update(entry)
    return merged


def _required_number(data: dict[str, Any], key: str, ctx: str) -> float:
    if data.get(key) is None:
        raise CatalogError(f"{ctx}: '{key}' is required")
    return _coerce_number(data[key], f"{ctx}.{key}")


def _coerce_number(value: Any, ctx: str) -> float:
    if isinstance(value, bool):  # Avoid bool being treated as int
        raise CatalogError(f"{ctx}: expected a number")
    if isinstance(value, (int, float)):
        return float(value)
    raise CatalogError(f"{ctx}: expected a number")


def _coerce_allocations(value: Any, ctx: str) -> dict[str, float]:
    allocations = _ensure_dict(value, f"{ctx}.allocations")
    out: dict[str, float] = {}
    for target_id, weight in allocations.items():
        target = _coerce_str(target_id, f"{ctx}.allocations key")
        out[target] = _coerce_number(weight, f"{ctx}.allocations.{target}")
    return out


def _coerce_name(value: Any, default: str, ctx: str) -> str:
    if value is None:
        return default
    return _coerce_str(value, f"{ctx}.name")


def _coerce_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{ctx}: expected non-empty string")
    return value


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise CatalogError(f"{ctx}: expected a mapping")
    return deepcopy(value)


def _ensure_list(value: Any, ctx: str) -> list[Any]:
    if not isinstance(value, list):
        raise CatalogError(f"{ctx}: expected a list")
    return list(value)
