# src/deployflow/core/config/hashing.py
"""
Hashing canônico do deployflow.

Gera a identidade estrutural (SHA-256 sobre JSON canônico) de:
    - configuração efetiva do engine
    - plano de deployment (ordem, ligações, parâmetros de topo)

Ambos os hashes são registrados no Manifest para rastreabilidade.

Política (v1):
    - chaves ordenadas, separadores compactos, UTF-8
    - valores não serializáveis em JSON são representados por `str(value)`
"""

import hashlib
import json
from typing import Any, Dict


def compute_hash(payload: Any) -> str:
    """SHA-256 hexadecimal (64 caracteres) da serialização JSON canônica."""
    canonical_json = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Hash da configuração efetiva.

    Configurações estruturalmente equivalentes (mesmo conteúdo, qualquer
    ordem de chaves) produzem o mesmo hash.

    Raises:
        TypeError: se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )
    return compute_hash(config)
