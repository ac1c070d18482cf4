# src/kitchen_flow/core/engine/runner.py
"""
Runner de workflows do Kitchen Flow.

O Runner interpreta a IR compilada contra um `Context`, em profundidade e
da esquerda para a direita, threading o contexto retornado por cada stage
para o próximo.

Ciclo de vida de uma run:
    Compiling → Running → Succeeded | Failed

Semântica por tipo de nó:
    - stage: validate (opcional) → execute; span start/stop|exception
    - loop: corpo uma vez por item; `<loop>_current` recebe o item
    - conditional: corpo 0 ou 1 vez conforme o predicado
    - parallel: sequencial (padrão) ou threads com copy-on-branch

Decisões arquiteturais:
    - A primeira falha interrompe toda a run (short-circuit)
    - Falhas *reportadas* (StageError / StageFailure / validação / rollback)
      viram `RunResult` com status FAILED
    - Faults inesperados sem rollback propagam inalterados ao chamador
    - Instrumentação é best-effort: falha de sink nunca quebra a run

Limites explícitos:
    - Não há retries nem cancelamento
    - Não persiste nada por conta própria (ver `ManifestSink`)
"""

from __future__ import annotations

import logging
import time
import weakref
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Sequence, Tuple

from kitchen_flow.core.exceptions import StageFailed, StageFailure
from kitchen_flow.core.workflow.builder import Workflow
from kitchen_flow.core.workflow.context import Context
from kitchen_flow.core.workflow.ir import (
    ConditionalNode,
    LoopNode,
    Node,
    ParallelNode,
    StageNode,
)
from kitchen_flow.core.workflow.stage import RollbackStage, ValidatingStage, impl_id
from kitchen_flow.core.workflow.types import EventType, RunResult, StageError, StageEvent

from .compiler import CompiledWorkflow, compile_workflow
from .options import ParallelMode, RunnerOptions
from .parallel import resolve_max_concurrency, run_threaded

logger = logging.getLogger(__name__)

COMPILER_WARNING_KEY = "<compiler>"
PACKAGE_LOGGER = "kitchen_flow"

LoopPath = Tuple[Tuple[str, int, Any], ...]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Runner:
    """Runner canônico: compilação memoizada + interpretação da IR."""

    def __init__(self, *, options: Optional[RunnerOptions] = None, sinks: Iterable[Any] = ()):
        self.options: RunnerOptions = options or RunnerOptions()
        self.sinks = list(sinks)
        self._compiled: "weakref.WeakKeyDictionary[Workflow, CompiledWorkflow]" = weakref.WeakKeyDictionary()

    # ------------------------------------------------------------------
    # Compiling
    # ------------------------------------------------------------------
    def compile(self, workflow: Workflow) -> CompiledWorkflow:
        """Compila (uma única vez por objeto `Workflow`) e devolve a IR."""
        compiled = self._compiled.get(workflow)
        if compiled is None:
            compiled = compile_workflow(workflow, strict=self.options.strict_structure)
            self._compiled[workflow] = compiled
        return compiled

    def run(self, workflow: Workflow, ctx: Context) -> RunResult:
        """
        Compila e executa um workflow.

        Raises:
            WorkflowStructureError: Definição inválida; nenhum stage é executado.
            Exception: Fault inesperado de um stage sem rollback (inalterado).
        """
        if self.options.log_level is not None:
            logging.getLogger(PACKAGE_LOGGER).setLevel(self.options.log_level)

        compiled = self.compile(workflow)
        for warning in compiled.warnings:
            ctx.add_warning(stage=COMPILER_WARNING_KEY, message=warning)

        ctx.metadata.setdefault("workflow", compiled.name)
        logger.debug("Starting workflow: %s (run_id=%s)", compiled.name, ctx.run_id)
        return self.execute_nodes(compiled.nodes, ctx)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def execute_nodes(self, nodes: Sequence[Node], ctx: Context) -> RunResult:
        """Executa uma sequência de nós já compilados."""
        try:
            final = self._run_nodes(nodes, ctx, ())
        except StageFailed as failure:
            logger.error("Stage %s failed: %r", failure.stage, failure.reason)
            last = failure.context if isinstance(failure.context, Context) else ctx
            return RunResult.failed(failure, last)
        return RunResult.succeeded(final)

    def _run_nodes(self, nodes: Sequence[Node], ctx: Context, loop_path: LoopPath) -> Context:
        for node in nodes:
            ctx = self._run_node(node, ctx, loop_path)
        return ctx

    def _run_node(self, node: Node, ctx: Context, loop_path: LoopPath) -> Context:
        if isinstance(node, StageNode):
            return self._run_stage(node, ctx, loop_path)
        if isinstance(node, LoopNode):
            return self._run_loop(node, ctx, loop_path)
        if isinstance(node, ConditionalNode):
            return self._run_conditional(node, ctx, loop_path)
        if isinstance(node, ParallelNode):
            return self._run_parallel(node, ctx, loop_path)
        raise TypeError(f"Unsupported IR node: {node!r}")

    # ------------------------------------------------------------------
    # Stage
    # ------------------------------------------------------------------
    def _run_stage(self, node: StageNode, ctx: Context, loop_path: LoopPath) -> Context:
        impl = node.impl() if isinstance(node.impl, type) else node.impl
        impl_name = impl_id(impl)

        ctx.current_stage = node.name
        ctx.stage_opts = dict(node.options)
        logger.debug("Executing stage: %s", node.name)

        span = _Span(self, stage=node.name, impl=impl_name, loop_path=loop_path, run_id=ctx.run_id)
        span.start()

        try:
            if isinstance(impl, ValidatingStage):
                verdict = impl.validate(ctx)
                if isinstance(verdict, StageError):
                    span.stop(success=False, error=verdict.reason)
                    ctx.log(stage=node.name, level="error", message="stage validation failed", reason=verdict.reason)
                    raise StageFailed.validation(
                        stage=node.name, reason=verdict.reason, context=ctx, loop_path=loop_path
                    )

            try:
                outcome = impl.execute(ctx)
                if not isinstance(outcome, (Context, StageError)):
                    raise TypeError(
                        f"Stage '{node.name}' returned {type(outcome).__name__}; expected Context or StageError"
                    )
            except StageFailure as failure:
                outcome = StageError(
                    reason=failure.reason if failure.reason is not None else failure.message,
                    details=dict(failure.details),
                )
            except StageFailed as nested:
                # falha estruturada de um runner aninhado: reportada por este stage
                outcome = StageError(
                    reason=nested.reason,
                    details={**nested.details, "failed_stage": nested.stage, "kind": nested.kind.value},
                )
            except Exception as fault:
                if not isinstance(impl, RollbackStage):
                    raise
                recovered = impl.rollback(ctx, fault)
                if not isinstance(recovered, Context):
                    recovered = ctx
                span.stop(success=False, error=fault)
                recovered.log(
                    stage=node.name,
                    level="error",
                    message="stage raised; rollback applied",
                    exception_class=fault.__class__.__name__,
                )
                raise StageFailed.rolled_back(
                    stage=node.name, fault=fault, context=recovered, loop_path=loop_path
                ) from fault

        except StageFailed:
            raise
        except Exception as fault:
            span.exception(fault)
            raise

        if isinstance(outcome, StageError):
            span.stop(success=False, error=outcome.reason)
            ctx.log(stage=node.name, level="error", message="stage reported failure", reason=outcome.reason)
            raise StageFailed.execution(stage=node.name, reason=outcome.reason, context=ctx, loop_path=loop_path)

        duration_ms = span.stop(success=True)
        outcome.log(stage=node.name, level="info", message="stage completed", duration_ms=duration_ms)
        return outcome

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------
    def _run_loop(self, node: LoopNode, ctx: Context, loop_path: LoopPath) -> Context:
        items = node.iterator(ctx) if callable(node.iterator) else node.iterator
        if hasattr(items, "__len__"):
            logger.debug("Starting loop: %s with %d items", node.name, len(items))
        else:
            logger.debug("Starting loop: %s", node.name)

        for index, item in enumerate(items):
            ctx = ctx.put_state(node.state_key, item)
            ctx = self._run_nodes(node.body, ctx, loop_path + ((node.name, index, item),))
        return ctx

    def _run_conditional(self, node: ConditionalNode, ctx: Context, loop_path: LoopPath) -> Context:
        predicate = node.predicate
        should_execute = bool(predicate(ctx)) if callable(predicate) else bool(predicate)
        if not should_execute:
            logger.debug("Conditional: skipping")
            return ctx
        logger.debug("Conditional: executing")
        return self._run_nodes(node.body, ctx, loop_path)

    def _run_parallel(self, node: ParallelNode, ctx: Context, loop_path: LoopPath) -> Context:
        max_concurrency = resolve_max_concurrency(node, ctx, self.options.default_max_concurrency)
        logger.debug(
            "Parallel: executing %d nodes with max_concurrency=%d (mode=%s)",
            len(node.body),
            max_concurrency,
            self.options.parallel_mode.value,
        )

        if self.options.parallel_mode is ParallelMode.THREADS:
            return run_threaded(
                lambda branch, branch_ctx: self._run_node(branch, branch_ctx, loop_path),
                node.body,
                ctx,
                max_workers=max_concurrency,
            )
        return self._run_nodes(node.body, ctx, loop_path)

    # ------------------------------------------------------------------
    # Instrumentation
    # ------------------------------------------------------------------
    def emit(self, event: StageEvent) -> None:
        for sink in self.sinks:
            try:
                sink.handle(event)
            except Exception:
                logger.exception("Instrumentation sink %r failed on %s event", sink, event.event_type.value)


class _Span:
    """Span de um stage: start → stop | exception, com duração medida."""

    def __init__(self, runner: Runner, *, stage: str, impl: str, loop_path: LoopPath, run_id: Optional[str]):
        self._runner = runner
        self._stage = stage
        self._impl = impl
        self._loop_path = loop_path
        self._run_id = run_id
        self._t0 = 0.0

    def _event(self, event_type: EventType, **fields: Any) -> StageEvent:
        return StageEvent(
            event_type=event_type,
            stage=self._stage,
            impl=self._impl,
            timestamp=_utcnow(),
            loop_path=self._loop_path,
            run_id=self._run_id,
            **fields,
        )

    def _elapsed_ms(self) -> int:
        return max(0, int((time.perf_counter() - self._t0) * 1000))

    def start(self) -> None:
        self._t0 = time.perf_counter()
        self._runner.emit(self._event(EventType.START))

    def stop(self, *, success: bool, error: Any = None) -> int:
        duration_ms = self._elapsed_ms()
        self._runner.emit(self._event(EventType.STOP, success=success, error=error, duration_ms=duration_ms))
        return duration_ms

    def exception(self, fault: BaseException) -> None:
        self._runner.emit(
            self._event(EventType.EXCEPTION, success=False, error=fault, duration_ms=self._elapsed_ms())
        )
