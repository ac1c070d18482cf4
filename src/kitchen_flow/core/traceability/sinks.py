# src/kitchen_flow/core/traceability/sinks.py
"""
Sinks de instrumentação do Runner.

O Runner emite um `StageEvent` para cada transição do span de um stage
(start, stop, exception) e o entrega a todos os sinks configurados. Um
sink é qualquer objeto com `handle(event)`.

Implementações:
    - EventLog     → lista em memória (testes, notebooks, diagnóstico)
    - LoggingSink  → linhas no `logging` padrão
    - ManifestSink → atualiza um `RunManifest`

Sinks podem ser chamados de múltiplas threads (parallel em modo
`threads`); as implementações abaixo serializam as escritas.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from kitchen_flow.core.errors import describe_reason, loop_path_details
from kitchen_flow.core.workflow.types import EventType, RunResult, StageEvent

from .manifest import RunManifest, run_finished, save_manifest, stage_failed, stage_finished, stage_started


@runtime_checkable
class InstrumentationSink(Protocol):
    def handle(self, event: StageEvent) -> None:
        ...


class EventLog:
    """Registro em memória, na ordem de emissão."""

    def __init__(self) -> None:
        self._events: List[StageEvent] = []
        self._lock = threading.Lock()

    def handle(self, event: StageEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[StageEvent]:
        with self._lock:
            return list(self._events)

    def of_type(self, event_type: EventType) -> List[StageEvent]:
        return [e for e in self.events if e.event_type is event_type]

    def for_stage(self, stage: str) -> List[StageEvent]:
        return [e for e in self.events if e.stage == stage]

    def __len__(self) -> int:
        return len(self.events)


class LoggingSink:
    """Encaminha eventos para um logger (`kitchen_flow.events` por padrão)."""

    def __init__(self, logger: Optional[logging.Logger] = None, *, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger("kitchen_flow.events")
        self.level = level

    def handle(self, event: StageEvent) -> None:
        if event.event_type is EventType.START:
            self.logger.log(self.level, "stage %s started (%s)", event.stage, event.impl)
        elif event.event_type is EventType.STOP and event.success:
            self.logger.log(self.level, "stage %s finished in %sms", event.stage, event.duration_ms)
        elif event.event_type is EventType.STOP:
            self.logger.warning("stage %s failed: %s", event.stage, describe_reason(event.error))
        else:
            self.logger.error("stage %s raised %s", event.stage, describe_reason(event.error))


class ManifestSink:
    """
    Adapta os eventos do Runner para um `RunManifest`.

    Mapeamento:
        - start               → stage_started
        - stop (success=True) → stage_finished
        - stop (success=False)→ stage_failed
        - exception           → stage_failed (fatal)
    """

    def __init__(self, manifest: RunManifest):
        self.manifest = manifest
        self._lock = threading.Lock()

    def handle(self, event: StageEvent) -> None:
        with self._lock:
            if event.event_type is EventType.START:
                stage_started(
                    self.manifest,
                    stage=event.stage,
                    impl=event.impl,
                    ts=event.timestamp,
                    loop_path=loop_path_details(event.loop_path),
                )
            elif event.event_type is EventType.STOP and event.success:
                stage_finished(self.manifest, stage=event.stage, ts=event.timestamp, duration_ms=event.duration_ms)
            else:
                stage_failed(
                    self.manifest,
                    stage=event.stage,
                    ts=event.timestamp,
                    error=str(describe_reason(event.error)),
                    fatal=event.event_type is EventType.EXCEPTION,
                )

    def finish(self, result: Optional[RunResult], *, ts: Any, path: Optional[Path] = None) -> Dict[str, Any]:
        """
        Fecha a run no Manifest e, opcionalmente, persiste em `path`.

        `result=None` indica que a run abortou com fault inesperado.
        """
        if result is None:
            status = "fault"
        else:
            status = result.status.value
        with self._lock:
            run_finished(self.manifest, status=status, ts=ts)
            if result is not None and result.error is not None:
                self.manifest.run["error"] = result.error.to_payload().to_dict()
            if path is not None:
                save_manifest(self.manifest, path)
            return self.manifest.to_dict()
