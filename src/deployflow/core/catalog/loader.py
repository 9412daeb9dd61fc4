"""Loader canônico de documentos de deployment (YAML/JSON).

Notas:
- YAML é preferencial, JSON é alternativo.
- O formato é inferido pela extensão do arquivo.
- Definições referenciadas por caminho são resolvidas relativamente ao
  diretório do documento que as referencia.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from deployflow.core.modules.types import (
    Deployment,
    ModuleDefinition,
    ModuleInstance,
    OutputSelection,
    OutputSpec,
)

from .errors import (
    DocumentNotFoundError,
    DocumentParseError,
    UnsupportedDocumentFormatError,
)
from .schema import (
    TemplateLoader,
    _expect,
    _is_non_empty_str,
    decode_expr,
    parse_definition,
    parse_parameters,
)

PathLike = Union[str, Path]

_INSTANCE_KEYS = {"name", "module", "params", "condition"}


def read_document(path: PathLike) -> Dict[str, Any]:
    """Lê um documento YAML/JSON cuja raiz deve ser um mapping.

    Raises:
        DocumentNotFoundError: se o arquivo não existir.
        UnsupportedDocumentFormatError: se a extensão não for suportada.
        DocumentParseError: se o parsing falhar ou a raiz não for um mapping.
    """
    p = Path(path)
    if not p.exists():
        raise DocumentNotFoundError(f"document not found: {p}", details={"path": str(p)})

    suffix = p.suffix.lower()
    raw = p.read_text(encoding="utf-8")

    try:
        if suffix in {".yml", ".yaml"}:
            data = yaml.safe_load(raw)
        elif suffix == ".json":
            data = json.loads(raw)
        else:
            raise UnsupportedDocumentFormatError(
                f"unsupported document format: {suffix}",
                details={"path": str(p)},
                hint="Use .yaml, .yml ou .json",
            )
    except UnsupportedDocumentFormatError:
        raise
    except (yaml.YAMLError, ValueError) as e:
        raise DocumentParseError(str(e) or "failed to parse document", details={"path": str(p)}) from e

    if data is None:
        # YAML vazio -> None
        raise DocumentParseError("document is empty", details={"path": str(p)})

    if not isinstance(data, dict):
        raise DocumentParseError("document root must be a mapping/dict", details={"path": str(p)})

    return data


class FileTemplateLoader:
    """TemplateLoader que lê definições de módulo de arquivos YAML/JSON.

    Cada arquivo é lido uma única vez por loader; referências repetidas ao
    mesmo caminho devolvem a mesma definição.
    """

    def __init__(self, base_dir: Optional[PathLike] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._cache: Dict[Path, ModuleDefinition] = {}

    def resolve(self, ref: str) -> Path:
        p = Path(ref)
        return p if p.is_absolute() else (self.base_dir / p)

    def load(self, ref: str, *, name: Optional[str] = None) -> ModuleDefinition:
        path = self.resolve(ref).resolve()
        cached = self._cache.get(path)
        if cached is not None and (name is None or cached.name == name):
            return cached

        data = read_document(path)
        definition = parse_definition(name or data.get("name") or path.stem, data, where=str(ref))
        self._cache[path] = definition
        return definition


def parse_deployment(
    data: Any,
    base_dir: Optional[PathLike] = None,
    *,
    templates: Optional[TemplateLoader] = None,
) -> Deployment:
    """
    Valida e materializa um documento de deployment v1.

    Definições informadas como caminho são carregadas por `templates`
    (default: `FileTemplateLoader(base_dir)`).

    Raises:
        DocumentValidationError: estrutura inválida.
        DefinitionError: definição ou instância semanticamente inválida.
    """
    _expect(isinstance(data, dict), "deployment document must be a mapping", "<root>")
    unknown = set(data) - {"parameters", "definitions", "instances", "outputs"}
    _expect(not unknown, f"unknown top-level keys {sorted(unknown)}", "<root>")

    if templates is None:
        templates = FileTemplateLoader(base_dir)

    parameters = parse_parameters(data.get("parameters"), "parameters")

    raw_defs = data.get("definitions") or {}
    _expect(isinstance(raw_defs, dict), "definitions must be a mapping", "definitions")
    definitions: Dict[str, ModuleDefinition] = {}
    for name, entry in raw_defs.items():
        if isinstance(entry, str):
            definitions[name] = templates.load(entry, name=name)
        else:
            definitions[name] = parse_definition(name, entry)

    raw_instances = data.get("instances") or []
    _expect(isinstance(raw_instances, list), "instances must be an ordered list", "instances")
    instances: List[ModuleInstance] = []
    for i, entry in enumerate(raw_instances):
        where = f"instances[{i}]"
        _expect(isinstance(entry, dict), f"{where} must be a mapping", where)
        unknown = set(entry) - _INSTANCE_KEYS
        _expect(not unknown, f"{where}: unknown keys {sorted(unknown)}", where)
        _expect(_is_non_empty_str(entry.get("name")), f"{where}.name is required", where)
        module = entry.get("module")
        _expect(
            isinstance(module, str) and module in definitions,
            f"{where}.module references unknown definition {module!r}",
            where,
        )

        params = entry.get("params") or {}
        _expect(isinstance(params, dict), f"{where}.params must be a mapping", where)
        condition = entry.get("condition")
        instances.append(
            ModuleInstance(
                name=entry["name"],
                definition=definitions[module],
                params={k: decode_expr(v, f"{where}.params.{k}") for k, v in params.items()},
                condition=None if condition is None else decode_expr(condition, f"{where}.condition"),
            )
        )

    raw_outputs = data.get("outputs") or {}
    _expect(isinstance(raw_outputs, dict), "outputs must be a mapping", "outputs")
    outputs: Dict[str, OutputSelection] = {}
    for name, entry in raw_outputs.items():
        where = f"outputs.{name}"
        _expect(isinstance(entry, dict) and "value" in entry, f"{where} must declare 'value'", where)
        _expect(set(entry) <= {"type", "value"}, f"{where}: only 'type' and 'value' are allowed", where)
        outputs[name] = OutputSelection(
            spec=OutputSpec(name=name, type=entry.get("type", "any")),
            value=decode_expr(entry["value"], f"{where}.value"),
        )

    return Deployment(
        parameters=parameters,
        definitions=tuple(definitions.values()),
        instances=tuple(instances),
        outputs=outputs,
    )


def load_deployment(path: PathLike, *, templates: Optional[TemplateLoader] = None) -> Deployment:
    """Carrega e valida um documento de deployment a partir de YAML/JSON."""
    p = Path(path)
    return parse_deployment(read_document(p), p.parent, templates=templates)
