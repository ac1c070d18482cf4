# src/kitchen_flow/core/workflow/instructions.py
"""
Instruções primitivas da definição de workflow.

Uma definição de workflow é uma sequência **plana e ordenada** destas
instruções. Blocos (loop, conditional, parallel) são delimitados por pares
de marcadores start/end; o compilador transforma a sequência em árvore.

Instruções:
    - StageInstruction(name, impl, opts)
    - LoopStart(name, opts) / LoopEnd(name)
    - ConditionalStart(predicate) / ConditionalEnd()
    - ParallelStart(opts) / ParallelEnd()

Qualquer outro objeto na sequência é tratado como instrução desconhecida
e descartado pelo compilador.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class StageInstruction:
    name: str
    impl: Any
    opts: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoopStart:
    name: str
    opts: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoopEnd:
    name: str


@dataclass(frozen=True)
class ConditionalStart:
    predicate: Any


@dataclass(frozen=True)
class ConditionalEnd:
    pass


@dataclass(frozen=True)
class ParallelStart:
    opts: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ParallelEnd:
    pass
