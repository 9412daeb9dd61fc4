# tests/core/engine/test_engine_run.py
"""
Testes da fachada Engine (plan → execute → select).

Os testes asseguram que:
- instâncias desligadas por configuração são puladas
- `engine.max_workers` da configuração é respeitado
- o plano e o progresso são registrados no RunContext e no Manifest
- os outputs de topo são selecionados ao final
"""

from datetime import datetime, timezone

import pytest

try:
    from deployflow.core.engine.engine import Engine, RunResult
    from deployflow.core.exceptions import ExecutionError
    from deployflow.core.modules.expressions import OutputRef
    from deployflow.core.modules.types import Deployment, InstanceStatus, OutputSelection, OutputSpec
    from deployflow.core.traceability.manifest import create_manifest
except Exception as e:  # noqa: BLE001
    Engine = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing Engine. Import error: {_IMPORT_ERR}")


def _deployment(make_instance):
    return Deployment(
        instances=(
            make_instance("network"),
            make_instance("app", params={"subnet": OutputRef("network", "out")}),
            make_instance("monitoring"),
        ),
        outputs={"url": OutputSelection(OutputSpec("url", "string"), OutputRef("app", "out"))},
    )


def _attach_manifest(ctx):
    ctx.manifest = create_manifest(
        run_id=ctx.run_id,
        started_at=datetime(2026, 1, 16, tzinfo=timezone.utc),
        engine_version="test",
        config_hash="0" * 64,
    )


def test_engine_run_happy_path(make_instance, RecordingDeployer, dummy_ctx):
    """
    Verifica um run completo, com `monitoring` desligada por configuração.
    """
    _require_imports()
    dummy_ctx.config["instances"] = {"monitoring": {"enabled": False}}
    _attach_manifest(dummy_ctx)

    engine = Engine(deployment=_deployment(make_instance), ctx=dummy_ctx)
    result = engine.run(RecordingDeployer())

    assert isinstance(result, RunResult)
    assert result.plan.order == ["network", "app"]
    assert result.plan.skipped == ("monitoring",)
    assert result.selected == {"url": "app-out"}
    assert result.instances["app"].status == InstanceStatus.SUCCESS
    assert "monitoring" not in result.instances

    manifest = dummy_ctx.manifest
    assert manifest.inputs["plan_hash"] == result.plan.plan_hash()
    assert manifest.plan == {"order": ["network", "app"], "skipped": ["monitoring"]}
    assert manifest.status_of("monitoring") == "skipped"
    assert manifest.status_of("app") == "success"
    assert manifest.events[0]["event_type"] == "plan_built"
    assert dummy_ctx.events[0]["message"] == "plan built"


def test_engine_uses_configured_max_workers(make_instance, RecordingDeployer, dummy_ctx):
    _require_imports()
    dummy_ctx.config["engine"] = {"max_workers": 3}
    deployment = Deployment(instances=tuple(make_instance(f"i{n}") for n in range(6)))
    deployer = RecordingDeployer(delay=0.05)

    engine = Engine(deployment=deployment, ctx=dummy_ctx)
    engine.run(deployer)
    assert deployer.peak <= 3


def test_engine_propagates_execution_error(make_instance, FailingDeployer, dummy_ctx):
    _require_imports()
    engine = Engine(deployment=_deployment(make_instance), ctx=dummy_ctx)
    with pytest.raises(ExecutionError) as exc:
        engine.run(FailingDeployer(fail_on={"app"}))
    assert exc.value.instance == "app"
    assert ("network", "out") in exc.value.outputs
