# src/deployflow/core/engine/engine.py
"""
Engine de deployment: fachada Build → Execute → SelectOutputs.

O Engine amarra as três operações públicas ao `RunContext` do run:

    - plan()    → valida o deployment (instâncias desligadas por config
                  ficam inativas) e registra o plano no Manifest
    - execute() → executa o plano com `engine.max_workers` da config
    - run()     → plan + execute + seleção dos outputs de topo

Erros não são convertidos em resultados silenciosos: PlanningError,
ExecutionError e UnresolvedOutputError propagam ao chamador, e o Manifest
(quando presente) guarda o progresso parcial.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from deployflow.core.config.loader import disabled_instances, max_workers
from deployflow.core.modules.context import RunContext
from deployflow.core.modules.types import Deployment, InstanceResult
from deployflow.core.traceability.manifest import record_plan

from .deployers import Deployer
from .executor import ExecutionCoordinator
from .outputs import select_plan_outputs
from .planner import DeploymentPlan, build_plan
from .resolved import ResolvedOutputs


@dataclass(frozen=True)
class RunResult:
    """Resultado agregado de um run completo."""

    plan: DeploymentPlan
    instances: Dict[str, InstanceResult] = field(default_factory=dict)
    outputs: Optional[ResolvedOutputs] = None
    selected: Dict[str, Any] = field(default_factory=dict)


class Engine:
    """Engine canônico do deployflow (planner + coordenador + agregador)."""

    def __init__(
        self,
        *,
        deployment: Deployment,
        ctx: RunContext,
        parameters: Optional[Mapping[str, Any]] = None,
    ):
        self.deployment = deployment
        self.ctx = ctx
        self.parameters = dict(parameters or {})

    def plan(self) -> DeploymentPlan:
        disabled = disabled_instances(self.ctx.config or {})
        plan = build_plan(self.deployment, self.parameters, disabled=disabled)

        self.ctx.log(
            instance=None,
            level="INFO",
            message="plan built",
            order=plan.order,
            skipped=list(plan.skipped),
        )
        if self.ctx.manifest is not None:
            record_plan(
                self.ctx.manifest,
                plan_hash=plan.plan_hash(),
                order=plan.order,
                skipped=list(plan.skipped),
                ts=datetime.now(timezone.utc),
            )
        return plan

    def execute(self, plan: DeploymentPlan, deployer: Deployer) -> ExecutionCoordinator:
        coordinator = ExecutionCoordinator(
            plan,
            deployer,
            max_workers=max_workers(self.ctx.config or {}),
            ctx=self.ctx,
        )
        coordinator.run()
        return coordinator

    def run(self, deployer: Deployer) -> RunResult:
        plan = self.plan()
        coordinator = self.execute(plan, deployer)
        selected = select_plan_outputs(plan, coordinator.outputs)
        return RunResult(
            plan=plan,
            instances=dict(coordinator.results),
            outputs=coordinator.outputs,
            selected=selected,
        )
