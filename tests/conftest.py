# tests/conftest.py
"""
Fixtures compartilhados para testes do deployflow.

Este módulo define fixtures reutilizáveis que fornecem:
- configurações mínimas e determinísticas (como YAML em string)
- contexto de execução controlado (RunContext)
- fábricas de definições e instâncias de módulos
- Deployers de teste (registro de chamadas e falha deliberada)

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - Deployers de teste usam duck typing em vez de herança

Invariantes:
    - Nenhuma fixture executa deployment real
    - Nenhuma fixture realiza I/O
    - Deployers de teste são seguros entre threads

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica condicional complexa
"""

import threading
import time
from datetime import datetime, timezone

import pytest


# =====================================================
# Config fixtures
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """
    YAML de configuração padrão (defaults) semelhante ao uso real.

    Representa o conteúdo típico de um `config.defaults.yaml`, base
    canônica sobre a qual a configuração local é aplicada via deep-merge.
    """
    return """\
engine:
  max_workers: 2
instances:
  network:
    enabled: true
  database:
    enabled: true
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """YAML de configuração local (overrides apenas)."""
    return """\
engine:
  max_workers: 4
instances:
  database:
    enabled: false
"""


# =====================================================
# RunContext
# =====================================================

@pytest.fixture
def dummy_config() -> dict:
    return {"engine": {"max_workers": 1}}


@pytest.fixture
def dummy_ctx(dummy_config):
    """
    RunContext determinístico para testes.

    Decisões arquiteturais:
        - `run_id` e `created_at` são fixos para garantir determinismo
        - O import é lazy para que falhas de import apareçam nos testes

    Invariantes:
        - O timestamp é timezone-aware (UTC)
        - O contexto inicia sem eventos, warnings ou Manifest
    """
    from deployflow.core.modules.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config=dummy_config,
        meta={"source": "pytest"},
    )


# =====================================================
# Modelo: definições e instâncias
# =====================================================

@pytest.fixture
def make_definition():
    """
    Fábrica de ModuleDefinition.

    `params` e `outputs` aceitam nomes (tipo `any`, parâmetro obrigatório)
    ou specs já construídas.
    """
    from deployflow.core.modules.types import ModuleDefinition, OutputSpec, ParameterSpec

    def _make(name, *, params=(), outputs=("out",), condition=None, template=None):
        return ModuleDefinition(
            name=name,
            template=template or f"templates/{name}",
            parameters=tuple(p if isinstance(p, ParameterSpec) else ParameterSpec(p) for p in params),
            outputs=tuple(o if isinstance(o, OutputSpec) else OutputSpec(o) for o in outputs),
            condition=condition,
        )

    return _make


@pytest.fixture
def make_instance(make_definition):
    """
    Fábrica de ModuleInstance com definição implícita.

    Cada parâmetro ligado vira um parâmetro `any` da definição, de modo que
    o teste declara apenas as ligações que interessam.
    """
    from deployflow.core.modules.types import ModuleInstance

    def _make(name, *, params=None, condition=None, outputs=("out",), definition=None):
        params = dict(params or {})
        if definition is None:
            definition = make_definition(f"mod_{name}", params=list(params), outputs=outputs)
        return ModuleInstance(name=name, definition=definition, params=params, condition=condition)

    return _make


# =====================================================
# Deployers de teste
# =====================================================

@pytest.fixture
def RecordingDeployer():
    """
    Fixture factory que fornece um Deployer que registra chamadas.

    O Deployer retornado:
    - devolve `{"out": "<nome>-out"}` por padrão, ou o que `outputs`
      (dict nome → outputs, ou callable(name, params)) indicar
    - registra (name, template, params) em `calls`, na ordem de início
    - opcionalmente dorme `delay` segundos, medindo o pico de concorrência

    Invariantes:
        - Seguro entre threads
        - Nunca levanta exceção
    """

    class _RecordingDeployer:
        def __init__(self, outputs=None, *, delay=0.0):
            self._outputs = outputs
            self.delay = delay
            self.calls = []
            self.active = 0
            self.peak = 0
            self._lock = threading.Lock()

        @property
        def order(self):
            return [c[0] for c in self.calls]

        def deploy(self, name, template, params):
            with self._lock:
                self.calls.append((name, template, dict(params)))
                self.active += 1
                self.peak = max(self.peak, self.active)
            try:
                if self.delay:
                    time.sleep(self.delay)
                if callable(self._outputs):
                    return self._outputs(name, params)
                if isinstance(self._outputs, dict) and name in self._outputs:
                    return dict(self._outputs[name])
                return {"out": f"{name}-out"}
            finally:
                with self._lock:
                    self.active -= 1

    return _RecordingDeployer


@pytest.fixture
def FailingDeployer(RecordingDeployer):
    """Deployer que falha deliberadamente para as instâncias em `fail_on`."""

    class _FailingDeployer(RecordingDeployer):
        def __init__(self, fail_on, outputs=None, *, delay=0.0, exc=None):
            super().__init__(outputs, delay=delay)
            self.fail_on = set(fail_on)
            self.exc = exc

        def deploy(self, name, template, params):
            if name in self.fail_on:
                with self._lock:
                    self.calls.append((name, template, dict(params)))
                raise self.exc or RuntimeError(f"boom: {name}")
            return super().deploy(name, template, params)

    return _FailingDeployer
