# src/kitchen_flow/__init__.py
"""
Kitchen Flow — workflows declarativos para pipelines de treinamento.

Um workflow é uma sequência de stages nomeados com controle de fluxo
estruturado (loops, conditionals, blocos parallel). A definição é
compilada uma vez para uma IR em árvore e interpretada contra um
`Context` que carrega config, adapters, state e métricas.

Arquitetura em alto nível:
    - core.config       → carregamento, merge e hashing de configuração
    - core.workflow     → Context, contrato de Stage, DSL, definições e IR
    - core.engine       → compilador e Runner
    - core.traceability → Manifest e sinks de instrumentação
    - stages            → stages utilitários (Noop, SetState)

Uso mínimo:

    import kitchen_flow as kf

    wf = kf.WorkflowBuilder("demo")
    wf.stage("seed", kf.SetState, values={"n": 1})
    result = kf.run(wf.build(), {"epochs": 2})
    assert result.ok
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from .core.config import compute_config_hash, load_config
from .core.engine import Runner, RunnerOptions, compile_workflow
from .core.exceptions import (
    AdapterNotFound,
    KitchenException,
    StageFailed,
    StageFailure,
    WorkflowStructureError,
)
from .core.traceability import EventLog, LoggingSink, ManifestSink, create_manifest
from .core.workflow.builder import Workflow, WorkflowBuilder
from .core.workflow.context import Context
from .core.workflow.definition import definition_from_data, load_definition
from .core.workflow.ir import describe_nodes
from .core.workflow.registry import StageRegistry
from .core.workflow.stage import BaseStage, RollbackStage, Stage, ValidatingStage
from .core.workflow.types import FailureKind, RunResult, RunStatus, StageError
from .logging_config import configure_logging
from .stages import Noop, SetState

__version__ = "0.1.0"


def run(
    workflow: Workflow,
    config: Optional[Mapping[str, Any]] = None,
    adapters: Optional[Mapping[str, Any]] = None,
    *,
    sinks: Iterable[Any] = (),
    options: Optional[RunnerOptions] = None,
    manifest_path: Optional[Union[str, Path]] = None,
) -> RunResult:
    """
    Executa um workflow com um Context novo.

    Args:
        workflow: Definição construída via `WorkflowBuilder` ou `load_definition`.
        config: Configuração da run (a seção `engine:` gera as `RunnerOptions`
            quando `options` não é informado).
        adapters: Port lógico → implementação.
        sinks: Sinks de instrumentação adicionais.
        options: Opções explícitas do Runner.
        manifest_path: Quando informado, grava o Run Manifest em JSON ao fim
            da run (inclusive quando um fault aborta a execução).

    Raises:
        WorkflowStructureError: Definição inválida (nenhum stage executado).
        EngineConfigurationError: Seção `engine:` inválida.
        Exception: Fault inesperado de stage sem rollback.
    """
    config = dict(config or {})
    runner = Runner(options=options or RunnerOptions.from_config(config), sinks=sinks)
    ctx = Context.new(config, adapters)

    if manifest_path is None:
        return runner.run(workflow, ctx)

    compiled = runner.compile(workflow)
    manifest_sink = ManifestSink(
        create_manifest(
            run_id=ctx.run_id,
            workflow=compiled.name,
            started_at=ctx.metadata["started_at"],
            kitchen_version=__version__,
            config_hash=compute_config_hash(config),
            outline=describe_nodes(compiled.nodes),
        )
    )
    runner.sinks.append(manifest_sink)

    result: Optional[RunResult] = None
    try:
        result = runner.run(workflow, ctx)
    finally:
        manifest_sink.finish(result, ts=datetime.now(timezone.utc), path=Path(manifest_path))
    return result


__all__ = [
    "__version__",
    "run",
    "Runner",
    "RunnerOptions",
    "compile_workflow",
    "Context",
    "Workflow",
    "WorkflowBuilder",
    "StageRegistry",
    "definition_from_data",
    "load_definition",
    "load_config",
    "Stage",
    "ValidatingStage",
    "RollbackStage",
    "BaseStage",
    "StageError",
    "RunResult",
    "RunStatus",
    "FailureKind",
    "KitchenException",
    "StageFailed",
    "StageFailure",
    "WorkflowStructureError",
    "AdapterNotFound",
    "EventLog",
    "LoggingSink",
    "ManifestSink",
    "Noop",
    "SetState",
    "configure_logging",
]
