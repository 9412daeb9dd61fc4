# src/deployflow/core/graph/__init__.py
"""
Análise estática do deployment.

    - references → OutputRefs de cada instância (validados contra o escopo)
    - builder    → grafo produtor → consumidor deduplicado
    - conditions → avaliação tri-state de condições e de ValueExprs
"""

from .builder import DependencyEdge, DependencyGraph, build_graph
from .conditions import PendingValue, evaluate_condition, evaluate_conditions, evaluate_expr
from .references import check_references, collect_output_refs, resolve_references

__all__ = [
    "DependencyEdge",
    "DependencyGraph",
    "build_graph",
    "PendingValue",
    "evaluate_condition",
    "evaluate_conditions",
    "evaluate_expr",
    "check_references",
    "collect_output_refs",
    "resolve_references",
]
