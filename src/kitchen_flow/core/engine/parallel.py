# src/kitchen_flow/core/engine/parallel.py
"""
Execução de blocos `parallel` em threads (copy-on-branch).

Cada nó de topo do corpo de um bloco parallel é um *ramo*. No modo
`threads`, cada ramo recebe um `ctx.fork()` (state copiado em
profundidade) e roda em um `ThreadPoolExecutor`. Depois que todos os
ramos terminam, os resultados são consolidados no contexto pai na ordem
declarada.

Política de merge (determinística), para o contexto que *é* o fork
recebido pelo ramo:
    - chaves escritas pelo ramo (via `put_state`/`delete_state`, ou
      reatribuídas por identidade em relação ao fork) sobrescrevem o pai;
      último ramo vence
    - chaves removidas pelo ramo são removidas do pai
    - métricas, eventos e warnings adicionados pelo ramo são anexados
      na ordem declarada dos ramos

Quando o ramo devolve outro Context (criado do zero, ou por um rollback),
não há linhagem com o fork: o state devolvido só sobrescreve chaves,
nada é removido do pai, e métricas/eventos/warnings do contexto devolvido
são anexados por inteiro.

Política de falha:
    - um fault cru em qualquer ramo é relançado após todos os ramos
      terminarem; o primeiro na ordem declarada vence
    - caso contrário, o primeiro ramo com falha estruturada (ordem
      declarada) determina a falha; ramos anteriores a ele são
      consolidados antes

Limites explícitos:
    - Não há cancelamento: ramos já iniciados sempre rodam até o fim
    - Valores de state que não suportam `deepcopy` são compartilhados por
      referência entre ramos; mutações in-place nesses valores não são
      isoladas
    - Mutação in-place de um valor copiado, sem `put_state`, fica restrita
      ao ramo
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from kitchen_flow.core.exceptions import StageFailed
from kitchen_flow.core.workflow.context import Context
from kitchen_flow.core.workflow.ir import Node, ParallelNode

from .options import EngineConfigurationError

logger = logging.getLogger(__name__)

BranchRunner = Callable[[Node, Context], Context]


def resolve_max_concurrency(node: ParallelNode, ctx: Context, default: Optional[int] = None) -> int:
    """
    Resolve o limite de concorrência de um bloco parallel.

    Ordem: opção do bloco (int ou callable(ctx)) → default do Runner →
    número de CPUs.
    """
    raw = node.options.get("max_concurrency")
    if raw is None:
        raw = default if default is not None else (os.cpu_count() or 1)
    elif callable(raw):
        raw = raw(ctx)

    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        raise EngineConfigurationError(
            message=f"max_concurrency must be a positive integer, got {raw!r}",
            details={"max_concurrency": repr(raw)},
        )
    return raw


@dataclass
class _Snapshot:
    """Estado de um fork no instante da criação."""

    fork: Context
    state: Dict[str, Any]
    metrics: int
    events: int
    warnings: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def of(cls, fork: Context) -> "_Snapshot":
        return cls(
            fork=fork,
            state=dict(fork.state),
            metrics=len(fork.get_metrics()),
            events=len(fork.events),
            warnings={k: len(v) for k, v in fork.warnings.items()},
        )


@dataclass
class _Outcome:
    context: Optional[Context] = None
    failure: Optional[StageFailed] = None
    fault: Optional[BaseException] = None


def _changed_keys(base: _Snapshot, branch: Context) -> List[str]:
    keys = set(branch.written_keys or ())
    keys.update(k for k, v in branch.state.items() if k not in base.state or base.state[k] is not v)
    keys.update(k for k in base.state if k not in branch.state)
    return sorted(keys)


def merge_branch(parent: Context, base: _Snapshot, branch: Context) -> None:
    """Consolida em `parent` o que `branch` alterou desde o fork `base`."""
    if branch is base.fork:
        for key in _changed_keys(base, branch):
            if key in branch.state:
                parent.put_state(key, branch.state[key])
            else:
                parent.delete_state(key)
        metrics_from, events_from, warnings_from = base.metrics, base.events, base.warnings
    else:
        logger.debug("Parallel branch returned a foreign context; merging as overwrites only")
        for key, value in branch.state.items():
            parent.put_state(key, value)
        metrics_from, events_from, warnings_from = 0, 0, {}

    parent._metrics.extend(branch.get_metrics()[metrics_from:])
    parent.events.extend(branch.events[events_from:])
    for stage, messages in branch.warnings.items():
        for message in messages[warnings_from.get(stage, 0):]:
            parent.add_warning(stage=stage, message=message)

    parent.current_stage = branch.current_stage
    parent.stage_opts = dict(branch.stage_opts)


def _run_one(run_branch: BranchRunner, node: Node, ctx: Context) -> _Outcome:
    try:
        return _Outcome(context=run_branch(node, ctx))
    except StageFailed as failure:
        return _Outcome(failure=failure)
    except Exception as fault:
        return _Outcome(fault=fault)


def run_threaded(
    run_branch: BranchRunner,
    body: Sequence[Node],
    ctx: Context,
    *,
    max_workers: int,
) -> Context:
    """
    Executa os ramos de `body` em threads e consolida no contexto `ctx`.

    Raises:
        StageFailed: Primeiro ramo com falha estruturada (ordem declarada),
            com `context` apontando para o pai consolidado.
        Exception: Primeiro fault cru (ordem declarada), inalterado.
    """
    if not body:
        return ctx

    snapshots: List[_Snapshot] = [_Snapshot.of(ctx.fork()) for _ in body]

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="kitchen-flow") as pool:
        futures = [pool.submit(_run_one, run_branch, node, snap.fork) for node, snap in zip(body, snapshots)]
        outcomes = [f.result() for f in futures]

    for outcome in outcomes:
        if outcome.fault is not None:
            raise outcome.fault

    for index, (outcome, base) in enumerate(zip(outcomes, snapshots)):
        if outcome.failure is not None:
            failed = outcome.failure
            if isinstance(failed.context, Context):
                merge_branch(ctx, base, failed.context)
            logger.debug("Parallel branch %d failed at stage %s", index, failed.stage)
            raise failed.with_context(ctx) from failed.__cause__
        merge_branch(ctx, base, outcome.context)

    return ctx
