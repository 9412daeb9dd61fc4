# src/deployflow/core/traceability/manifest.py
"""
Manifest v1 — rastreabilidade forense de runs de deployment.

O Manifest consolida, de forma determinística e auditável:
    - metadados do run (run_id, started_at, versão do engine)
    - hashes das entradas (configuração efetiva e plano)
    - o plano (ordem e instâncias inativas)
    - estado incremental de cada instância
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem em que o coordenador observou
      cada transição
    - O Manifest é serializável e reconstruível (round-trip JSON)

Com fail-fast, o Manifest é o registro do progresso parcial: instâncias
concluídas mantêm seus outputs, a instância que falhou guarda o erro e as
não iniciadas aparecem como `cancelled`.

Limites explícitos:
    - Não executa instâncias
    - Não decide políticas de execução
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Timestamps naive são assumidos UTC; os demais são convertidos para UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class DeploymentManifest:
    """
    Registro forense de um run de deployment.

    Campos principais:
        - run: metadados da execução
        - inputs: hashes de configuração e plano
        - plan: ordem planejada e instâncias inativas
        - instances: estado incremental por nome de deployment
        - events: Event Log ordenado

    Invariantes:
        - `instances` é sempre um dicionário indexado por nome de deployment
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável em JSON
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    plan: Dict[str, Any] = field(default_factory=dict)
    instances: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "plan": dict(self.plan),
            "instances": {k: dict(v) for k, v in self.instances.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            plan=dict(data.get("plan", {}) or {}),
            instances={k: dict(v) for k, v in (data.get("instances", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )

    def status_of(self, instance: str) -> Optional[str]:
        return self.instances.get(instance, {}).get("status")


def create_manifest(
    *,
    run_id: str,
    started_at: datetime,
    engine_version: str,
    config_hash: str,
    plan_hash: Optional[str] = None,
) -> DeploymentManifest:
    """
    Cria o Manifest inicial de um run.

    ⚠️ Esta função **não emite eventos**: o Event Log começa vazio.
    """
    return DeploymentManifest(
        run={
            "run_id": run_id,
            "started_at": _iso(started_at),
            "engine_version": engine_version,
        },
        inputs={
            "config_hash": config_hash,
            "plan_hash": plan_hash,
        },
    )


def add_event(
    manifest: DeploymentManifest,
    *,
    event_type: str,
    ts: datetime,
    instance: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Adiciona um evento explícito ao Event Log (ordem de chamada = ordem canônica)."""
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if instance is not None:
        ev["instance"] = instance
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def record_plan(
    manifest: DeploymentManifest,
    *,
    plan_hash: str,
    order: List[str],
    skipped: List[str],
    ts: datetime,
) -> None:
    """Registra o plano validado e o evento `plan_built`."""
    manifest.inputs["plan_hash"] = plan_hash
    manifest.plan = {"order": list(order), "skipped": list(skipped)}
    for name in skipped:
        manifest.instances[name] = {"instance": name, "status": "skipped", "reason": "condition false"}
    add_event(
        manifest,
        event_type="plan_built",
        ts=ts,
        payload={"plan_hash": plan_hash, "instances": len(order), "skipped": len(skipped)},
    )


def instance_started(
    manifest: DeploymentManifest,
    *,
    instance: str,
    template: str,
    ts: datetime,
) -> None:
    """Marca a instância como `running` e emite `instance_started`."""
    s = manifest.instances.setdefault(instance, {"instance": instance})
    s.update({"status": "running", "template": template, "started_at": _iso(ts)})
    add_event(manifest, event_type="instance_started", ts=ts, instance=instance,
              payload={"template": template})


def instance_finished(
    manifest: DeploymentManifest,
    *,
    instance: str,
    ts: datetime,
    result: Dict[str, Any],
) -> None:
    """
    Registra o estado final de uma instância (success, skipped ou cancelled).

    `result` segue a forma de `InstanceResult` serializado: status, summary,
    outputs, warnings.
    """
    s = manifest.instances.setdefault(instance, {"instance": instance})
    started_iso = s.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    status = result.get("status", "success")
    s.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "outputs": result.get("outputs", {}) or {},
            "warnings": result.get("warnings", []) or [],
        }
    )
    add_event(
        manifest,
        event_type=f"instance_{status}",
        ts=ts,
        instance=instance,
        payload={"status": status, "duration_ms": s["duration_ms"]},
    )


def instance_failed(
    manifest: DeploymentManifest,
    *,
    instance: str,
    ts: datetime,
    error: Dict[str, Any],
) -> None:
    """Marca a instância como `failed` guardando o ErrorPayload serializado."""
    s = manifest.instances.setdefault(instance, {"instance": instance})
    s.update({"status": "failed", "finished_at": _iso(ts), "error": error})
    add_event(manifest, event_type="instance_failed", ts=ts, instance=instance,
              payload={"error": error.get("message")})


def save_manifest(manifest: DeploymentManifest, path: Path) -> None:
    """
    Persiste o Manifest em JSON determinístico (chaves ordenadas, indentado).

    Raises:
        OSError: falha ao criar diretórios ou escrever o arquivo.
        TypeError: conteúdo não serializável (ex.: outputs não-JSON).
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> DeploymentManifest:
    data = json.loads(path.read_text(encoding="utf-8"))
    return DeploymentManifest.from_dict(data)
