# src/deployflow/core/engine/__init__.py
"""
Engine do deployflow.

Este pacote contém a implementação responsável por **planejar** e
**executar** deployments de módulos de infraestrutura.

Componentes principais:
    - planner   → Build: validação estrutural, ciclos, atividade e ordem
    - executor  → Execute: coordenação concorrente e fail-fast
    - resolved  → ResolvedOutputs (estado compartilhado, write-once)
    - outputs   → SelectOutputs: outputs de topo
    - deployers → contrato do Deployer e implementações utilitárias
    - engine    → fachada que amarra as operações ao RunContext

Princípios fundamentais:
    - Planejamento e execução são responsabilidades separadas
    - A ordem parcial do plano é o contrato; a ordem linear é determinística
    - Nenhuma decisão silenciosa é tomada durante a execução

Limites explícitos:
    - Não provisiona recursos (isso é do Deployer)
    - Não faz retry, rollback nem timeouts
"""

from .deployers import CallableDeployer, Deployer, DryRunDeployer
from .engine import Engine, RunResult
from .executor import ExecutionCoordinator, execute_plan
from .outputs import select_outputs, select_plan_outputs
from .planner import (
    DeploymentPlan,
    PlannedInstance,
    build_plan,
    check_acyclic,
    check_active_dependencies,
    find_cycles,
    plan_deployment,
    topological_order,
)
from .resolved import ResolvedOutputs

__all__ = [
    "CallableDeployer",
    "Deployer",
    "DeploymentPlan",
    "DryRunDeployer",
    "Engine",
    "ExecutionCoordinator",
    "PlannedInstance",
    "ResolvedOutputs",
    "RunResult",
    "build_plan",
    "check_acyclic",
    "check_active_dependencies",
    "execute_plan",
    "find_cycles",
    "plan_deployment",
    "select_outputs",
    "select_plan_outputs",
    "topological_order",
]
