"""
Manifest: modelos, inclusión condicional, validación, compilación y planificación.

Lógica pura salvo read_manifest/load_manifest, que leen el YAML indicado.
"""

from converge.core.manifest.conditions import condition_holds, resolve_selector, select_declarations
from converge.core.manifest.loader import Catalog, compile_manifest, load_manifest, read_manifest
from converge.core.manifest.models import Declaration, Manifest
from converge.core.manifest.planner import plan_from_diffs, plan_from_report
from converge.core.manifest.validator import parse_chain, validate_manifest_data

__all__ = [
    "Catalog",
    "Declaration",
    "Manifest",
    "compile_manifest",
    "condition_holds",
    "load_manifest",
    "parse_chain",
    "plan_from_diffs",
    "plan_from_report",
    "read_manifest",
    "resolve_selector",
    "select_declarations",
    "validate_manifest_data",
]
