# tests/core/config/test_hashing.py
"""
Testes do hashing canônico (config e plano).
"""

import pytest

try:
    from deployflow.core.config.hashing import compute_config_hash, compute_hash
except Exception as e:  # noqa: BLE001
    compute_hash = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing hashing helpers. Import error: {_IMPORT_ERR}")


def test_hash_is_sha256_hex():
    _require_imports()
    h = compute_config_hash({"engine": {"max_workers": 1}})
    assert len(h) == 64
    assert all(c in "0123456789abcdef" for c in h)


def test_key_order_does_not_matter():
    _require_imports()
    a = {"engine": {"max_workers": 2}, "instances": {"x": {"enabled": True}}}
    b = {"instances": {"x": {"enabled": True}}, "engine": {"max_workers": 2}}
    assert compute_config_hash(a) == compute_config_hash(b)


def test_content_changes_hash():
    _require_imports()
    assert compute_hash({"a": 1}) != compute_hash({"a": 2})


def test_config_hash_requires_dict():
    _require_imports()
    with pytest.raises(TypeError):
        compute_config_hash(["not", "a", "dict"])
