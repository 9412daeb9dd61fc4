# src/deployflow/core/engine/executor.py
"""
Coordenador de execução do plano de deployment.

Percorre um `DeploymentPlan` já validado e, para cada instância, resolve
seus parâmetros, invoca o Deployer e publica os outputs em
`ResolvedOutputs`.

Modelo de escalonamento:
    - um único fluxo de controle (esta classe) decide o que iniciar
    - ramos independentes rodam em paralelo num ThreadPoolExecutor limitado
      por `max_workers`
    - uma instância só inicia depois que todos os seus produtores concluíram
      e publicaram outputs; entre instâncias prontas, vale a ordem do plano

Política de falha (fail-fast):
    - na primeira falha o run é cancelado
    - instâncias ainda não iniciadas ficam CANCELLED
    - instâncias em andamento terminam e seus resultados são registrados
    - `ExecutionError` é levantado com os outputs já publicados

Limites explícitos:
    - Não faz retry nem rollback
    - Não impõe timeouts (prazos são do Deployer)
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from deployflow.core.errors import exception_to_error
from deployflow.core.exceptions import (
    ExecutionError,
    InactiveDependencyError,
    OutputContractError,
    ParameterBindingError,
)
from deployflow.core.graph.conditions import PendingValue, evaluate_condition, evaluate_expr
from deployflow.core.modules.context import RunContext
from deployflow.core.modules.parameters import bind_parameters
from deployflow.core.modules.types import InstanceResult, InstanceStatus, ModuleInstance
from deployflow.core.traceability.manifest import instance_failed, instance_finished, instance_started

from .deployers import Deployer
from .planner import DeploymentPlan, PlannedInstance
from .resolved import ResolvedOutputs


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionCoordinator:
    """Executa um plano contra um Deployer (uma instância por coordenador/run)."""

    def __init__(
        self,
        plan: DeploymentPlan,
        deployer: Deployer,
        *,
        parameters: Optional[Mapping[str, Any]] = None,
        max_workers: int = 1,
        ctx: Optional[RunContext] = None,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.plan = plan
        self.deployer = deployer
        self.max_workers = max_workers
        self.ctx = ctx
        self.parameters = self._bind_parameters(parameters)
        self.outputs = ResolvedOutputs()
        self.results: Dict[str, InstanceResult] = {}

    # ------------------------------------------------------------------
    # Parâmetros de topo
    # ------------------------------------------------------------------
    def _bind_parameters(self, parameters: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if parameters is None:
            return dict(self.plan.parameters)
        bound = bind_parameters(self.plan.parameter_specs, parameters, scope="deployment")
        if bound != dict(self.plan.parameters):
            # condições foram avaliadas no Build com os parâmetros do plano
            raise ParameterBindingError(
                "Parameters differ from the ones the plan was built with",
                details={"instance": "deployment", "problems": ["parameters differ from plan"]},
                hint="Reconstrua o plano com os mesmos parâmetros usados na execução",
            )
        return bound

    # ------------------------------------------------------------------
    # Observabilidade
    # ------------------------------------------------------------------
    def _log(self, instance: Optional[str], level: str, message: str, **extra: Any) -> None:
        if self.ctx is not None:
            self.ctx.log(instance=instance, level=level, message=message, **extra)

    def _warn(self, instance: str, message: str) -> None:
        if self.ctx is not None:
            self.ctx.add_warning(instance=instance, message=message)

    def _manifest(self) -> Any:
        return getattr(self.ctx, "manifest", None) if self.ctx is not None else None

    def _record(self, result: InstanceResult) -> None:
        self.results[result.instance] = result
        manifest = self._manifest()
        if manifest is None:
            return
        if result.status == InstanceStatus.FAILED:
            instance_failed(manifest, instance=result.instance, ts=_now(), error=result.payload.get("error", {}))
        else:
            instance_finished(
                manifest,
                instance=result.instance,
                ts=_now(),
                result={
                    "status": result.status.value,
                    "summary": result.summary,
                    "outputs": result.outputs,
                    "warnings": result.warnings,
                },
            )

    # ------------------------------------------------------------------
    # Execução de uma instância (roda no worker)
    # ------------------------------------------------------------------
    def _resolve_params(self, instance: ModuleInstance) -> Dict[str, Any]:
        resolved: Dict[str, Any] = {}
        for name, expr in instance.bound_expressions().items():
            try:
                resolved[name] = evaluate_expr(expr, self.parameters, self.outputs.resolve)
            except PendingValue as e:
                raise InactiveDependencyError(
                    f"Instance '{instance.name}' needs '{e.ref}', but '{e.ref.instance}' was not deployed",
                    details={
                        "violations": [
                            {
                                "instance": instance.name,
                                "producer": e.ref.instance,
                                "reason": "producer skipped at execution time",
                                "via": f"param:{name}",
                            }
                        ]
                    },
                    hint="Torne o consumidor condicional à mesma condição do produtor",
                ) from None
        return bind_parameters(instance.definition.parameters, resolved, scope=instance.name)

    def _check_outputs(self, instance: ModuleInstance, raw: Any) -> Dict[str, Any]:
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise OutputContractError(
                f"Deployer returned {type(raw).__name__} for '{instance.name}', expected a mapping",
                details={"instance": instance.name},
            )

        problems: List[str] = []
        published: Dict[str, Any] = {}
        for spec in instance.definition.outputs:
            if spec.name not in raw:
                problems.append(f"missing output '{spec.name}'")
            elif not spec.accepts(raw[spec.name]):
                problems.append(
                    f"output '{spec.name}' expects {spec.type}, got {type(raw[spec.name]).__name__}"
                )
            else:
                published[spec.name] = raw[spec.name]

        if problems:
            raise OutputContractError(
                f"Outputs of '{instance.name}' violate the module contract: " + "; ".join(problems),
                details={"instance": instance.name, "problems": problems},
            )

        extra = sorted(set(raw) - set(published))
        if extra:
            self._warn(instance.name, f"undeclared outputs ignored: {', '.join(extra)}")
        return published

    def _deploy_one(self, entry: PlannedInstance) -> InstanceResult:
        instance = self.plan.instances[entry.name]

        if entry.deferred:
            active = evaluate_condition(instance.effective_condition(), self.parameters, self.outputs.resolve)
            if active is None:
                raise InactiveDependencyError(
                    f"Condition of '{instance.name}' depends on outputs that were never published",
                    details={"violations": [{"instance": instance.name, "producer": "", "reason":
                                             "unresolvable condition", "via": "condition"}]},
                )
            if not active:
                self._log(instance.name, "INFO", "skipped: condition evaluated false at execution time")
                return InstanceResult(
                    instance=instance.name,
                    status=InstanceStatus.SKIPPED,
                    summary="skipped: condition false",
                    warnings=self._ctx_warnings(instance.name),
                )

        params = self._resolve_params(instance)
        self._log(instance.name, "INFO", "deploying", template=entry.template)
        raw = self.deployer.deploy(instance.name, entry.template, params)
        published = self._check_outputs(instance, raw)
        self.outputs.publish(instance.name, published)
        self._log(instance.name, "INFO", "deployed", outputs=sorted(published))

        return InstanceResult(
            instance=instance.name,
            status=InstanceStatus.SUCCESS,
            summary="deployed",
            outputs=dict(published),
            warnings=self._ctx_warnings(instance.name),
        )

    def _ctx_warnings(self, instance: str) -> List[str]:
        return self.ctx.warnings_for(instance) if self.ctx is not None else []

    # ------------------------------------------------------------------
    # Laço de coordenação
    # ------------------------------------------------------------------
    def run(self) -> ResolvedOutputs:
        """
        Executa o plano inteiro.

        Returns:
            ResolvedOutputs: outputs publicados por todas as instâncias.

        Raises:
            ExecutionError: primeira instância que falhou (fail-fast).
        """
        order = {name: i for i, name in enumerate(self.plan.order)}
        pending: List[PlannedInstance] = list(self.plan.entries)
        finished: Set[str] = set()
        running: Dict[Future, str] = {}
        failure: Optional[tuple] = None

        self._log(None, "INFO", "execution started", instances=len(pending), max_workers=self.max_workers)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="deployflow") as pool:
            while True:
                if failure is None:
                    for entry in list(pending):
                        if len(running) >= self.max_workers:
                            break
                        if all(p in finished for p in entry.producers):
                            pending.remove(entry)
                            manifest = self._manifest()
                            if manifest is not None:
                                instance_started(manifest, instance=entry.name, template=entry.template, ts=_now())
                            running[pool.submit(self._deploy_one, entry)] = entry.name

                if not running:
                    break

                done, _ = wait(list(running), return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: order[running[f]]):
                    name = running.pop(future)
                    exc = future.exception()
                    if exc is None:
                        self._record(future.result())
                        finished.add(name)
                        continue

                    error = exception_to_error(exc, instance=name)
                    self._record(
                        InstanceResult(
                            instance=name,
                            status=InstanceStatus.FAILED,
                            summary=error.message,
                            warnings=self._ctx_warnings(name),
                            payload={"error": error.to_dict()},
                        )
                    )
                    self._log(name, "ERROR", error.message, error_type=error.type)
                    if failure is None:
                        failure = (name, exc)

        if failure is None and pending:
            # inalcançável para planos válidos: todo produtor está no plano
            raise RuntimeError(f"unsatisfiable plan, never started: {[e.name for e in pending]}")

        for entry in pending:
            self._record(
                InstanceResult(
                    instance=entry.name,
                    status=InstanceStatus.CANCELLED,
                    summary="cancelled after an earlier failure",
                )
            )

        if failure is not None:
            name, exc = failure
            completed = [n for n in self.plan.order if self.results.get(n) and
                         self.results[n].status == InstanceStatus.SUCCESS]
            self._log(None, "ERROR", "execution aborted", failed=name)
            raise ExecutionError(
                f"Deployment of instance '{name}' failed: {exc}",
                details={
                    "instance": name,
                    "error": exception_to_error(exc, instance=name).to_dict(),
                    "completed": completed,
                    "cancelled": [e.name for e in pending],
                },
                hint="Outputs já publicados foram preservados; corrija a causa e reexecute",
                instance=name,
                cause=exc,
                outputs=self.outputs,
                results=dict(self.results),
            ) from exc

        self._log(None, "INFO", "execution finished", instances=len(self.results))
        return self.outputs


def execute_plan(
    plan: DeploymentPlan,
    deployer: Deployer,
    parameters: Optional[Mapping[str, Any]] = None,
    *,
    max_workers: int = 1,
    ctx: Optional[RunContext] = None,
) -> ResolvedOutputs:
    """Execute: roda o plano e devolve os outputs resolvidos (ou ExecutionError)."""
    coordinator = ExecutionCoordinator(plan, deployer, parameters=parameters, max_workers=max_workers, ctx=ctx)
    return coordinator.run()
