"""Generate JSON Schema and docs for the profile and suite YAML formats."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel

from testability.config import ScoringProfile, SuiteConfig

SCHEMA_MODELS: dict[str, type[BaseModel]] = {
    "profile": ScoringProfile,
    "suite": SuiteConfig,
}

# Rule models and the key that identifies each in YAML
RULE_MODELS = {
    "LinearCountRule": "linear",
    "PresenceRule": "presence",
    "InversePenaltyRule": "inverse_penalty",
    "BandRule": "bands",
    "RatioRule": "ratio",
}


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _collect_refs(obj: object) -> set[str]:
    """Return all ``$defs`` names referenced via ``$ref`` inside *obj*."""
    refs: set[str] = set()
    if isinstance(obj, dict):
        if "$ref" in obj:
            ref = obj["$ref"]
            if ref.startswith("#/$defs/"):
                refs.add(ref.removeprefix("#/$defs/"))
        for v in obj.values():
            refs |= _collect_refs(v)
    elif isinstance(obj, list):
        for v in obj:
            refs |= _collect_refs(v)
    return refs


def _order_defs(defs: dict) -> dict:
    """Topologically sort ``$defs`` so referenced types precede referencing types."""
    ordered: dict[str, dict] = {}
    visited: set[str] = set()

    def _visit(name: str) -> None:
        if name in visited or name not in defs:
            return
        visited.add(name)
        for dep in _collect_refs(defs[name]):
            _visit(dep)
        ordered[name] = defs[name]

    for name in defs:
        _visit(name)
    return ordered


def generate_json_schema(kind: str = "profile") -> dict:
    if kind not in SCHEMA_MODELS:
        raise ValueError(
            f"Unknown schema kind '{kind}', expected one of: {', '.join(SCHEMA_MODELS)}"
        )
    schema = SCHEMA_MODELS[kind].model_json_schema()
    if "$defs" in schema:
        schema["$defs"] = _order_defs(schema["$defs"])
    return schema


def write_json_schema(path: Path, kind: str = "profile") -> None:
    _ensure_parent(path)
    schema = generate_json_schema(kind)
    path.write_text(json.dumps(schema, indent=2) + "\n")


def _format_fields(fields: Iterable[str]) -> str:
    return ", ".join(fields)


def generate_schema_doc() -> str:
    defs = generate_json_schema("profile").get("$defs", {})

    lines: list[str] = []
    lines.append("# testability YAML Schema")
    lines.append("")
    lines.append("This doc is generated from the Pydantic models.")
    lines.append("")
    lines.append("## Profile top-level keys")
    lines.append("- `name`: string (required)")
    lines.append("- `description`: string (optional)")
    lines.append("- `acceptable_score`: integer (optional, default 70)")
    lines.append("- `priority_ladder`: array of { below, priority } (optional)")
    lines.append("- `principles`: array of principle definitions (required)")
    lines.append("- `advice`: mapping of principle name to advice text (required per principle)")
    lines.append("")
    lines.append("## Principle")
    principle = defs.get("PrincipleConfig", {})
    lines.append(f"- {{ {_format_fields(principle.get('properties', {}).keys())} }}")
    lines.append("- rule budgets of a principle must sum to exactly 100")
    lines.append("")
    lines.append("## Rules")
    for model_name, key in RULE_MODELS.items():
        props = defs.get(model_name, {}).get("properties", {})
        if not props:
            continue
        if key == "bands":
            spec = defs.get("BandSpec", {}).get("properties", {})
            lines.append(f"- `{key}`: {{ {_format_fields(spec.keys())} }}, with name, budget")
        elif key == "ratio":
            spec = defs.get("RatioSpec", {}).get("properties", {})
            lines.append(f"- `{key}`: {{ {_format_fields(spec.keys())} }}, with name, budget")
        elif key == "presence":
            others = [k for k in props if k != key]
            lines.append(f"- `{key}`: string, with {_format_fields(others)}")
        else:
            others = [k for k in props if k != key]
            lines.append(f"- `{key}`: mapping of observation to weight, with {_format_fields(others)}")

    lines.append("")
    lines.append("## Suite top-level keys")
    lines.append("- `profile`: bundled profile name or path to a profile YAML (default `full`)")
    lines.append("- `acceptable_score`: integer (optional, overrides the profile)")
    lines.append("- `subjects`: array of { name, observations }; observations is a")
    lines.append("  path to a JSON/YAML file or an inline mapping")
    lines.append("")
    return "\n".join(lines)


def write_schema_doc(path: Path) -> None:
    _ensure_parent(path)
    path.write_text(generate_schema_doc())
