# tests/core/engine/test_resolved_outputs.py
"""
Testes do ResolvedOutputs (estado compartilhado do run).

Invariantes verificadas:
    - cada instância publica exatamente uma vez
    - leitores podem bloquear até a publicação
    - leituras de outputs indisponíveis levantam KeyError
"""

import threading

import pytest

try:
    from deployflow.core.engine.resolved import ResolvedOutputs
    from deployflow.core.modules.expressions import OutputRef
except Exception as e:  # noqa: BLE001
    ResolvedOutputs = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing ResolvedOutputs. Import error: {_IMPORT_ERR}")


def test_publish_is_write_once():
    _require_imports()
    outputs = ResolvedOutputs()
    outputs.publish("a", {"out": 1})
    with pytest.raises(ValueError):
        outputs.publish("a", {"out": 2})
    assert outputs.get("a", "out") == 1


def test_published_mapping_is_copied():
    _require_imports()
    values = {"out": 1}
    outputs = ResolvedOutputs()
    outputs.publish("a", values)
    values["out"] = 2
    assert outputs[("a", "out")] == 1


def test_lookup_and_membership():
    _require_imports()
    outputs = ResolvedOutputs()
    outputs.publish("a", {"out": 1, "port": 80})

    assert outputs.resolve(OutputRef("a", "port")) == 80
    assert ("a", "out") in outputs
    assert "a" in outputs
    assert ("a", "nope") not in outputs
    assert len(outputs) == 2
    assert sorted(outputs) == [("a", "out"), ("a", "port")]
    with pytest.raises(KeyError):
        outputs.resolve(OutputRef("b", "out"))


def test_wait_for_blocks_until_published():
    _require_imports()
    outputs = ResolvedOutputs()
    timer = threading.Timer(0.05, outputs.publish, args=("a", {"out": "late"}))
    timer.start()
    try:
        assert outputs.wait_for("a", timeout=2) == {"out": "late"}
    finally:
        timer.cancel()


def test_wait_for_timeout():
    _require_imports()
    with pytest.raises(TimeoutError):
        ResolvedOutputs().wait_for("a", timeout=0.01)
