# src/deployflow/core/config/loader.py
"""
Loader canônico de configuração do engine do deployflow.

A configuração é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional; ignorado se não existir)

Chaves conhecidas (v1):

    engine:
      max_workers: 1        # concorrência máxima do coordenador
    instances:
      <deployment name>:
        enabled: true       # false → instância tratada como inativa

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Erros estruturais são falhas fatais
    - A mesma entrada sempre produz a mesma configuração final

Limites explícitos:
    - Não carrega documentos de deployment (ver `deployflow.core.catalog`)
    - Não persiste configuração ou hash
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    InvalidConfigValueError,
    UnsupportedConfigFormatError,
)

DEFAULT_MAX_WORKERS = 1

_PARSERS = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo de configuração YAML/JSON; arquivo vazio vale `{}`.

    Raises:
        DefaultsNotFoundError: arquivo inexistente.
        UnsupportedConfigFormatError: extensão fora de .yaml, .yml, .json.
        InvalidConfigRootTypeError: raiz que não é um mapeamento.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    parse = _PARSERS.get(path.suffix.lower())
    if parse is None:
        raise UnsupportedConfigFormatError(
            f"Formato não suportado: {path.suffix} (use .yaml, .yml ou .json)"
        )

    data = parse(path.read_text(encoding="utf-8"))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"A raiz de {path.name} deve ser um mapeamento, recebido: {type(data).__name__}"
        )
    return data


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validação estrutural das chaves conhecidas; chaves desconhecidas são preservadas.

    Raises:
        InvalidConfigValueError: valores inválidos em `engine` ou `instances`.
    """
    engine = config.get("engine", {})
    if engine is None:
        engine = {}
    if not isinstance(engine, dict):
        raise InvalidConfigValueError("'engine' deve ser um mapeamento")

    workers = engine.get("max_workers", DEFAULT_MAX_WORKERS)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise InvalidConfigValueError(
            f"'engine.max_workers' deve ser inteiro >= 1, recebido: {workers!r}"
        )

    instances = config.get("instances", {}) or {}
    if not isinstance(instances, dict):
        raise InvalidConfigValueError("'instances' deve ser um mapeamento")
    for name, cfg in instances.items():
        if cfg is None:
            continue
        if not isinstance(cfg, dict):
            raise InvalidConfigValueError(f"'instances.{name}' deve ser um mapeamento")
        if "enabled" in cfg and not isinstance(cfg["enabled"], bool):
            raise InvalidConfigValueError(f"'instances.{name}.enabled' deve ser booleano")

    return config


def disabled_instances(config: Dict[str, Any]) -> List[str]:
    """Nomes de instâncias desligadas por configuração (`enabled: false`)."""
    instances = (config or {}).get("instances", {}) or {}
    return sorted(
        name for name, cfg in instances.items()
        if isinstance(cfg, dict) and cfg.get("enabled", True) is False
    )


def max_workers(config: Dict[str, Any]) -> int:
    engine = (config or {}).get("engine", {}) or {}
    return int(engine.get("max_workers", DEFAULT_MAX_WORKERS))


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva do engine.

    Política de resolução:
        - defaults obrigatório; local opcional e com precedência
        - resolução via `deep_merge`
        - resultado validado estruturalmente

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
        InvalidConfigValueError: Se uma chave conhecida tiver valor inválido.
    """
    effective = _load_file(Path(defaults_path))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return validate_config(effective)
