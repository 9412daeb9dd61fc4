# tests/core/traceability/test_manifest_round_trip.py
"""
Testes de persistência do Manifest (round-trip JSON).
"""

import json
from datetime import datetime, timezone

import pytest

try:
    from deployflow.core.traceability.manifest import (
        DeploymentManifest,
        create_manifest,
        instance_finished,
        instance_started,
        load_manifest,
        record_plan,
        save_manifest,
    )
except Exception as e:  # noqa: BLE001
    create_manifest = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


T0 = datetime(2026, 1, 16, tzinfo=timezone.utc)


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing Manifest persistence. Import error: {_IMPORT_ERR}")


def _populated():
    m = create_manifest(run_id="run-7", started_at=T0, engine_version="0.1.0", config_hash="c" * 64)
    record_plan(m, plan_hash="p" * 64, order=["net"], skipped=["audit"], ts=T0)
    instance_started(m, instance="net", template="registry/network", ts=T0)
    instance_finished(m, instance="net", ts=T0, result={"status": "success", "outputs": {"id": 1}})
    return m


def test_save_and_load_round_trip(tmp_path):
    _require_imports()
    m = _populated()
    path = tmp_path / "runs" / "run-7" / "manifest.json"
    save_manifest(m, path)

    loaded = load_manifest(path)
    assert isinstance(loaded, DeploymentManifest)
    assert loaded.to_dict() == m.to_dict()
    assert loaded.status_of("net") == "success"


def test_saved_json_is_deterministic(tmp_path):
    _require_imports()
    path = tmp_path / "manifest.json"
    save_manifest(_populated(), path)
    first = path.read_text(encoding="utf-8")
    save_manifest(_populated(), path)

    assert path.read_text(encoding="utf-8") == first
    assert list(json.loads(first)) == ["events", "inputs", "instances", "plan", "run"]


def test_from_dict_tolerates_missing_sections():
    _require_imports()
    m = DeploymentManifest.from_dict({"run": {"run_id": "x"}, "inputs": {}})
    assert m.instances == {}
    assert m.events == []
    assert m.plan == {}
