# src/deployflow/core/config/merge.py
"""
Deep-merge determinístico de configuração.

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (sem merge elemento a elemento)
    - escalar → sobrescrita direta
    - conflito de tipos → erro estrutural explícito, com o caminho da chave

Nenhum input é mutado.
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _merge_at(base: Dict[str, Any], override: Dict[str, Any], path: str) -> Dict[str, Any]:
    result: Dict[str, Any] = deepcopy(base)

    for key, value in override.items():
        key_path = f"{path}.{key}" if path else str(key)

        if key not in result:
            result[key] = deepcopy(value)
            continue

        current = result[key]
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _merge_at(current, value, key_path)
        elif isinstance(value, list) or type(current) is type(value):
            result[key] = deepcopy(value)
        elif isinstance(current, (int, float)) and isinstance(value, (int, float)) \
                and not isinstance(current, bool) and not isinstance(value, bool):
            # int <-> float é aceito (ex.: timeout 30 vs 30.5)
            result[key] = deepcopy(value)
        else:
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key_path}': "
                f"{type(current).__name__} vs {type(value).__name__}"
            )

    return result


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combina `base` (defaults) com `override` (local) e devolve um novo dict.

    Raises:
        ConfigTypeConflictError: raiz não-dict ou tipos incompatíveis numa chave.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )
    return _merge_at(base, override, "")
