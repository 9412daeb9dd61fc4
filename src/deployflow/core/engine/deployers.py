# src/deployflow/core/engine/deployers.py
"""
Contrato do Deployer e implementações utilitárias.

O Deployer é o colaborador externo que efetivamente provisiona um módulo.
O engine só conhece o contrato:

    deploy(name, template, params) -> outputs

Falhas são sinalizadas levantando exceções; retry, backoff e timeouts são
responsabilidade do Deployer, nunca do engine.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Protocol, Tuple, runtime_checkable

from deployflow.core.modules.types import OutputSpec


@runtime_checkable
class Deployer(Protocol):
    def deploy(self, name: str, template: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        """Provisiona a instância `name` e devolve seus outputs."""
        ...


class CallableDeployer:
    """Adapta uma função `fn(name, template, params)` ao contrato do Deployer."""

    def __init__(self, fn: Callable[[str, str, Mapping[str, Any]], Mapping[str, Any]]):
        self._fn = fn

    def deploy(self, name: str, template: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fn(name, template, params)


_PLACEHOLDERS: Dict[str, Any] = {
    "int": 0,
    "number": 0,
    "bool": False,
    "object": {},
    "array": [],
}


class DryRunDeployer:
    """
    Deployer de simulação (what-if): nada é provisionado.

    Cada output declarado recebe um valor de placeholder compatível com o
    tipo (`"<instancia.output>"` para string/any), permitindo exercitar o
    plano completo, inclusive a propagação de valores, sem efeitos externos.
    As chamadas recebidas ficam registradas em `calls`.
    """

    def __init__(self, outputs_by_instance: Mapping[str, Iterable[OutputSpec]]):
        self._outputs = {name: tuple(specs) for name, specs in outputs_by_instance.items()}
        self._lock = threading.Lock()
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    @classmethod
    def from_plan(cls, plan: Any) -> "DryRunDeployer":
        return cls({name: inst.definition.outputs for name, inst in plan.instances.items()})

    def deploy(self, name: str, template: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        with self._lock:
            self.calls.append((name, template, dict(params)))
        outputs: Dict[str, Any] = {}
        for spec in self._outputs.get(name, ()):
            placeholder = _PLACEHOLDERS.get(spec.type)
            outputs[spec.name] = (
                f"<{name}.{spec.name}>" if placeholder is None else type(placeholder)(placeholder)
            )
        return outputs
