# src/deployflow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do deployflow.

As exceções aqui definidas representam violações estruturais da
configuração do engine (arquivos de defaults/local), e não erros de
planejamento ou de execução de instâncias.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção de configuração é recuperada silenciosamente
"""


class ConfigError(Exception):
    """Exceção base para erros de configuração do deployflow."""


class DefaultsNotFoundError(ConfigError):
    """
    O arquivo de configuração base (defaults) não existe.

    O arquivo de defaults é obrigatório; o arquivo local é opcional.
    """


class UnsupportedConfigFormatError(ConfigError):
    """Extensão não suportada (v1: .yaml, .yml, .json)."""


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz da configuração não é um mapeamento."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"engine": {"max_workers": 4}}
        - override: {"engine": "parallel"}
    """


class InvalidConfigValueError(ConfigError):
    """Valor estruturalmente inválido para uma chave conhecida (ex.: max_workers <= 0)."""
