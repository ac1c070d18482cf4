# src/kitchen_flow/core/traceability/manifest.py
"""
Run Manifest v1 — rastreabilidade forense de execuções de workflow.

O Manifest consolida, de forma determinística e auditável:
    - metadados da execução (run_id, workflow, versão)
    - hash da configuração efetiva e outline da IR compilada
    - estado agregado por stage (execuções, falhas, último status)
    - Event Log ordenado de eventos explícitos

Diferente de um DAG, um workflow pode executar o mesmo stage várias
vezes (dentro de loops). Por isso o estado por stage é **agregado**:
cada entrada conta execuções e falhas e guarda o resultado mais recente.

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem real de execução
    - UTC é o timezone canônico para todos os timestamps
    - O Manifest é serializável em JSON e reconstruível (round-trip)

Limites explícitos:
    - Não executa workflows
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
    """Timestamps naive são assumidos como UTC; os demais são convertidos."""
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
class RunManifest:
    """
    Manifest v1 — registro forense de uma run de workflow.

    Campos principais:
        - run: run_id, workflow, started_at, finished_at, status, kitchen_version
        - inputs: config_hash e outline da IR
        - stages: estado agregado por nome de stage
        - events: Event Log ordenado

    Invariantes:
        - `stages` é sempre um dicionário indexado pelo nome do stage
        - `events` é sempre uma lista ordenada
        - A estrutura completa é serializável
    """

    run: Dict[str, Any]
    inputs: Dict[str, Any]
    stages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "inputs": dict(self.inputs),
            "stages": {k: dict(v) for k, v in self.stages.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunManifest":
        return cls(
            run=dict(data.get("run", {})),
            inputs=dict(data.get("inputs", {})),
            stages={k: dict(v) for k, v in (data.get("stages", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_manifest(
    *,
    run_id: str,
    workflow: str,
    started_at: datetime,
    kitchen_version: str,
    config_hash: str,
    outline: Optional[List[Dict[str, Any]]] = None,
) -> RunManifest:
    """
    Cria o Manifest inicial de uma run.

    Esta função **não emite eventos implicitamente**: o Event Log inicia
    vazio e só é preenchido por chamadas explícitas a `add_event`,
    `stage_started`, `stage_finished`, `stage_failed` ou `run_finished`.
    """
    started_at = _ensure_tzaware_utc(started_at)
    return RunManifest(
        run={
            "run_id": run_id,
            "workflow": workflow,
            "started_at": _iso(started_at),
            "kitchen_version": kitchen_version,
            "status": "running",
        },
        inputs={
            "config_hash": config_hash,
            "outline": list(outline or []),
        },
        stages={},
        events=[],
    )


def add_event(
    manifest: RunManifest,
    *,
    event_type: str,
    ts: datetime,
    stage: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Adiciona um evento explícito ao Event Log do Manifest.

    A ordem do Event Log é a ordem de chamada; eventos não são
    reordenados nem deduplicados.
    """
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if stage is not None:
        ev["stage"] = stage
    if payload is not None:
        ev["payload"] = payload
    manifest.events.append(ev)


def _stage_entry(manifest: RunManifest, stage: str, impl: Optional[str] = None) -> Dict[str, Any]:
    entry = manifest.stages.setdefault(
        stage,
        {"stage": stage, "impl": impl, "runs": 0, "failures": 0, "status": "pending"},
    )
    if impl is not None:
        entry["impl"] = impl
    return entry


def stage_started(
    manifest: RunManifest,
    *,
    stage: str,
    impl: str,
    ts: datetime,
    loop_path: Optional[List[Dict[str, Any]]] = None,
) -> None:
    """Marca o início de uma execução de stage e registra `stage_started`."""
    entry = _stage_entry(manifest, stage, impl)
    entry["runs"] += 1
    entry["status"] = "running"
    entry["started_at"] = _iso(ts)

    payload: Dict[str, Any] = {"impl": impl}
    if loop_path:
        payload["loop_path"] = loop_path
    add_event(manifest, event_type="stage_started", ts=ts, stage=stage, payload=payload)


def stage_finished(
    manifest: RunManifest,
    *,
    stage: str,
    ts: datetime,
    duration_ms: Optional[int] = None,
) -> None:
    """Registra a conclusão bem-sucedida de uma execução de stage."""
    entry = _stage_entry(manifest, stage)
    if duration_ms is None:
        started = entry.get("started_at")
        duration_ms = _ms_between(datetime.fromisoformat(started), ts) if started else 0

    entry.update(
        {
            "status": "success",
            "finished_at": _iso(ts),
            "duration_ms": duration_ms,
        }
    )
    add_event(
        manifest,
        event_type="stage_finished",
        ts=ts,
        stage=stage,
        payload={"status": "success", "duration_ms": duration_ms},
    )


def stage_failed(
    manifest: RunManifest,
    *,
    stage: str,
    ts: datetime,
    error: str,
    fatal: bool = False,
) -> None:
    """
    Registra a falha de uma execução de stage.

    `fatal=True` indica um fault sem rollback (a run abortou sem resultado
    estruturado); o status do stage passa a ser `"fault"`.
    """
    entry = _stage_entry(manifest, stage)
    entry["failures"] += 1
    entry.update(
        {
            "status": "fault" if fatal else "failed",
            "finished_at": _iso(ts),
            "error": error,
        }
    )
    add_event(
        manifest,
        event_type="stage_failed",
        ts=ts,
        stage=stage,
        payload={"error": error, "fatal": fatal},
    )


def run_finished(manifest: RunManifest, *, status: str, ts: datetime) -> None:
    """Fecha a run no Manifest (status terminal) e registra `run_finished`."""
    manifest.run["status"] = status
    manifest.run["finished_at"] = _iso(ts)
    add_event(manifest, event_type="run_finished", ts=ts, payload={"status": status})


def save_manifest(manifest: RunManifest, path: Path) -> None:
    """Persiste o Manifest em JSON determinístico (chaves ordenadas, UTF-8)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(manifest.to_dict(), ensure_ascii=False, indent=2, sort_keys=True, default=str),
        encoding="utf-8",
    )


def load_manifest(path: Path) -> RunManifest:
    """Restaura um Manifest persistido por `save_manifest`."""
    data = json.loads(path.read_text(encoding="utf-8"))
    return RunManifest.from_dict(data)
