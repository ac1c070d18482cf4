# src/kitchen_flow/core/workflow/builder.py
"""
Superfície de definição de workflows (DSL fluente).

O `WorkflowBuilder` produz a sequência plana de instruções consumida pelo
compilador. Blocos são abertos com gerenciadores de contexto, que emitem
o marcador de início ao entrar e o marcador de fim ao sair:

    wf = WorkflowBuilder("supervised")
    wf.stage("load_dataset", LoadDataset())
    with wf.loop("epochs", over=lambda ctx: range(ctx.get_config("epochs", 1))):
        wf.stage("train_epoch", TrainEpoch())
        with wf.conditional(lambda ctx: ctx.get_state("should_eval", False)):
            wf.stage("evaluate", Evaluate())
    wf.stage("save", Save())
    workflow = wf.build()

O builder não valida aninhamento: isso é responsabilidade do compilador.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Tuple

from .instructions import (
    ConditionalEnd,
    ConditionalStart,
    LoopEnd,
    LoopStart,
    ParallelEnd,
    ParallelStart,
    StageInstruction,
)


@dataclass(frozen=True, eq=False)
class Workflow:
    """Definição nomeada e imutável: a sequência plana de instruções."""

    name: str
    instructions: Tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.instructions)


class WorkflowBuilder:
    """Builder fluente de definições de workflow."""

    def __init__(self, name: str = "workflow"):
        self.name = name
        self._instructions: List[Any] = []

    @property
    def instructions(self) -> Tuple[Any, ...]:
        return tuple(self._instructions)

    def stage(self, name: str, impl: Any, **opts: Any) -> "WorkflowBuilder":
        """Adiciona um stage. Classes são instanciadas sem argumentos."""
        if isinstance(impl, type):
            impl = impl()
        self._instructions.append(StageInstruction(name=name, impl=impl, opts=dict(opts)))
        return self

    @contextmanager
    def loop(self, name: str, *, over: Any, **opts: Any) -> Iterator["WorkflowBuilder"]:
        self._instructions.append(LoopStart(name=name, opts={"over": over, **opts}))
        yield self
        self._instructions.append(LoopEnd(name=name))

    @contextmanager
    def conditional(self, predicate: Any) -> Iterator["WorkflowBuilder"]:
        self._instructions.append(ConditionalStart(predicate=predicate))
        yield self
        self._instructions.append(ConditionalEnd())

    @contextmanager
    def parallel(self, **opts: Any) -> Iterator["WorkflowBuilder"]:
        self._instructions.append(ParallelStart(opts=dict(opts)))
        yield self
        self._instructions.append(ParallelEnd())

    def extend(self, instructions: Iterable[Any]) -> "WorkflowBuilder":
        """Anexa instruções cruas (ex.: fragmentos reutilizáveis)."""
        self._instructions.extend(instructions)
        return self

    def build(self) -> Workflow:
        return Workflow(name=self.name, instructions=tuple(self._instructions))
