"""Erros canônicos do catálogo de documentos de deployment.

Documentos de deployment e arquivos de definição de módulo são entradas
críticas do Build. Falhas de leitura ou validação devem produzir erros
explícitos e estáveis, todos derivados de `DefinitionError`.
"""

from __future__ import annotations

from dataclasses import dataclass

from deployflow.core.exceptions import DefinitionError


@dataclass(eq=False)
class CatalogError(DefinitionError):
    """Erro base do catálogo."""


@dataclass(eq=False)
class DocumentNotFoundError(CatalogError):
    """Arquivo de deployment ou de definição não existe no caminho informado."""


@dataclass(eq=False)
class UnsupportedDocumentFormatError(CatalogError):
    """Formato não suportado (v1: YAML/JSON)."""


@dataclass(eq=False)
class DocumentParseError(CatalogError):
    """Falha ao parsear YAML/JSON, ou raiz que não é um mapping."""


@dataclass(eq=False)
class DocumentValidationError(CatalogError):
    """Documento não é estruturalmente válido."""
