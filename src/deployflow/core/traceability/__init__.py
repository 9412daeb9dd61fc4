# src/deployflow/core/traceability/__init__.py
"""
Rastreabilidade de runs de deployment (Manifest + Event Log).

O Manifest registra hashes de entrada, o plano, o estado final de cada
instância e um Event Log ordenado, permitindo reportar progresso parcial
quando o run é interrompido por fail-fast.
"""

from .manifest import (
    DeploymentManifest,
    add_event,
    create_manifest,
    instance_failed,
    instance_finished,
    instance_started,
    load_manifest,
    record_plan,
    save_manifest,
)

__all__ = [
    "DeploymentManifest",
    "add_event",
    "create_manifest",
    "instance_failed",
    "instance_finished",
    "instance_started",
    "load_manifest",
    "record_plan",
    "save_manifest",
]
