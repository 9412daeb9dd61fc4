# tests/core/engine/test_executor_happy_path.py
"""
Testes do caminho feliz do coordenador de execução.

Este módulo valida que `execute_plan`:
- invoca o Deployer uma vez por instância ativa, com parâmetros resolvidos
- propaga outputs de produtores para consumidores
- publica apenas os outputs declarados
- registra resultados e eventos no RunContext

Limites explícitos:
    - Não valida fail-fast (ver test_executor_fail_fast)
    - Não valida concorrência (ver test_executor_concurrency)
"""

import pytest

try:
    from deployflow.core.engine.deployers import CallableDeployer, DryRunDeployer
    from deployflow.core.engine.executor import ExecutionCoordinator, execute_plan
    from deployflow.core.engine.planner import build_plan
    from deployflow.core.engine.resolved import ResolvedOutputs
    from deployflow.core.exceptions import ParameterBindingError
    from deployflow.core.modules.expressions import Conditional, Literal, OutputRef, ParamRef
    from deployflow.core.modules.types import (
        Deployment,
        InstanceStatus,
        ModuleInstance,
        OutputSpec,
        ParameterSpec,
    )
except Exception as e:  # noqa: BLE001
    execute_plan = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing execution coordinator. Implement:
- deployflow.core.engine.executor.execute_plan
Import error: {_IMPORT_ERR}
""")


def test_outputs_flow_from_producer_to_consumer(make_instance, RecordingDeployer):
    """
    Verifica o cenário [A, B]: B recebe o output de A como parâmetro.

    Invariantes:
        - A é implantada antes de B
        - o valor publicado por A chega intacto a B
    """
    _require_imports()
    plan = build_plan(
        Deployment(
            instances=(
                make_instance("B", params={"x": OutputRef("A", "out")}),
                make_instance("A"),
            )
        )
    )
    deployer = RecordingDeployer()
    outputs = execute_plan(plan, deployer)

    assert isinstance(outputs, ResolvedOutputs)
    assert deployer.order == ["A", "B"]
    assert deployer.calls[1] == ("B", "templates/mod_B", {"x": "A-out"})
    assert outputs[("A", "out")] == "A-out"
    assert outputs[("B", "out")] == "B-out"
    assert outputs.instances() == ["A", "B"]


def test_params_literals_and_defaults_are_resolved(make_definition, RecordingDeployer):
    _require_imports()
    definition = make_definition(
        "app",
        params=(
            ParameterSpec("region", "string"),
            ParameterSpec("replicas", "int", default=2),
            ParameterSpec("tier", "string"),
        ),
    )
    deployment = Deployment(
        parameters=(ParameterSpec("region", "string", default="eu-west-1"), ParameterSpec("prod", "bool")),
        instances=(
            ModuleInstance(
                "web",
                definition,
                params={
                    "region": ParamRef("region"),
                    "tier": Conditional(ParamRef("prod"), Literal("large"), Literal("small")),
                },
            ),
        ),
    )
    plan = build_plan(deployment, {"prod": True})
    deployer = RecordingDeployer()
    execute_plan(plan, deployer)

    assert deployer.calls == [
        ("web", "templates/app", {"region": "eu-west-1", "replicas": 2, "tier": "large"})
    ]


def test_results_and_events_are_recorded(make_instance, RecordingDeployer, dummy_ctx):
    _require_imports()
    plan = build_plan(Deployment(instances=(make_instance("A"),)))
    coordinator = ExecutionCoordinator(plan, RecordingDeployer(), ctx=dummy_ctx)
    coordinator.run()

    result = coordinator.results["A"]
    assert result.status == InstanceStatus.SUCCESS
    assert result.outputs == {"out": "A-out"}

    messages = [e["message"] for e in dummy_ctx.events]
    assert messages[0] == "execution started"
    assert "deploying" in messages
    assert messages[-1] == "execution finished"


def test_undeclared_outputs_are_dropped_with_warning(make_instance, RecordingDeployer, dummy_ctx):
    _require_imports()
    plan = build_plan(Deployment(instances=(make_instance("A"),)))
    deployer = RecordingDeployer({"A": {"out": 1, "debug": "x"}})
    outputs = execute_plan(plan, deployer, ctx=dummy_ctx)

    assert outputs.for_instance("A") == {"out": 1}
    assert dummy_ctx.warnings_for("A") == ["undeclared outputs ignored: debug"]


def test_callable_deployer(make_instance):
    _require_imports()
    plan = build_plan(Deployment(instances=(make_instance("A"),)))
    outputs = execute_plan(plan, CallableDeployer(lambda name, template, params: {"out": name.lower()}))
    assert outputs[("A", "out")] == "a"


def test_dry_run_deployer_uses_typed_placeholders(make_definition, make_instance):
    """
    Verifica o Deployer de simulação (what-if).

    Invariantes:
        - outputs string/any viram "<instancia.output>"
        - demais tipos recebem um valor neutro do tipo declarado
        - a propagação de valores entre instâncias é exercitada
    """
    _require_imports()
    net = ModuleInstance(
        "net",
        make_definition("network", outputs=(OutputSpec("subnet", "string"), OutputSpec("ports", "array"),
                                            OutputSpec("size", "int"))),
    )
    app = make_instance("app", params={"subnet": OutputRef("net", "subnet")})
    plan = build_plan(Deployment(instances=(net, app)))

    deployer = DryRunDeployer.from_plan(plan)
    outputs = execute_plan(plan, deployer)

    assert outputs.for_instance("net") == {"subnet": "<net.subnet>", "ports": [], "size": 0}
    assert deployer.calls[1] == ("app", "templates/mod_app", {"subnet": "<net.subnet>"})


def test_parameters_must_match_the_plan(make_instance, RecordingDeployer):
    _require_imports()
    deployment = Deployment(
        parameters=(ParameterSpec("env", "string"),),
        instances=(make_instance("A", params={"env": ParamRef("env")}),),
    )
    plan = build_plan(deployment, {"env": "dev"})

    execute_plan(plan, RecordingDeployer(), {"env": "dev"})
    with pytest.raises(ParameterBindingError):
        execute_plan(plan, RecordingDeployer(), {"env": "prod"})


def test_empty_plan_executes_nothing(RecordingDeployer):
    _require_imports()
    deployer = RecordingDeployer()
    outputs = execute_plan(build_plan(Deployment()), deployer)
    assert len(outputs) == 0
    assert deployer.calls == []


def test_unset_optional_top_level_parameter_resolves_to_none(make_definition, make_instance, RecordingDeployer):
    """
    Verifica que um parâmetro de topo opcional, sem default e sem valor,
    é ligado como None no Build e resolvido sem erro na execução.
    """
    _require_imports()
    typed = make_definition("typed", params=(ParameterSpec("x", "string", required=False),))
    deployment = Deployment(
        parameters=(ParameterSpec("x", "string", required=False),),
        instances=(
            make_instance("A", params={"x": ParamRef("x")}),
            ModuleInstance("B", typed, params={"x": ParamRef("x")}),
        ),
    )
    plan = build_plan(deployment)
    assert plan.parameters == {"x": None}

    deployer = RecordingDeployer()
    execute_plan(plan, deployer)
    assert deployer.calls == [
        ("A", "templates/mod_A", {"x": None}),
        ("B", "templates/typed", {"x": None}),
    ]
