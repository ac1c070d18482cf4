# src/kitchen_flow/core/traceability/__init__.py
"""
Pacote de rastreabilidade do Kitchen Flow — Run Manifest v1 e sinks.

Responsabilidades principais:
    - Criar e manter o Manifest de uma run de workflow
    - Registrar eventos explícitos em um Event Log ordenado
    - Agregar o estado de cada stage (execuções, falhas, último status)
    - Receber os eventos de ciclo de vida emitidos pelo Runner (sinks)

API pública exposta:
    - RunManifest, create_manifest, add_event, run_finished
    - stage_started, stage_finished, stage_failed
    - save_manifest, load_manifest
    - InstrumentationSink, EventLog, LoggingSink, ManifestSink

Limites explícitos:
    - Não executa workflows
    - Não decide políticas de execução
"""

from .manifest import (
    RunManifest,
    add_event,
    create_manifest,
    load_manifest,
    run_finished,
    save_manifest,
    stage_failed,
    stage_finished,
    stage_started,
)
from .sinks import EventLog, InstrumentationSink, LoggingSink, ManifestSink

__all__ = [
    "RunManifest",
    "create_manifest",
    "add_event",
    "stage_started",
    "stage_finished",
    "stage_failed",
    "run_finished",
    "save_manifest",
    "load_manifest",
    "InstrumentationSink",
    "EventLog",
    "LoggingSink",
    "ManifestSink",
]
