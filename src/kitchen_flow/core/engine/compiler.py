# src/kitchen_flow/core/engine/compiler.py
"""
Compilador de workflows (instruções planas → IR).

Este módulo transforma a sequência plana e ordenada de instruções de uma
definição de workflow em uma árvore de nós executáveis (IR), resolvendo
os limites de blocos aninhados uma única vez, antes da execução.

O compilador opera exclusivamente em nível estrutural:
    - pareamento de marcadores start/end
    - nomes de loops
    - presença do iterador (`over`) em loops

Decisões arquiteturais:
    - Compilação por pilha explícita de blocos abertos (uma passada)
    - Corpos são compilados por completo antes de serem embutidos no pai
    - `LoopEnd` deve carregar o nome do loop aberto mais interno
    - `ConditionalEnd`/`ParallelEnd` fecham o bloco mais interno do seu tipo;
      um marcador de fim que não corresponde ao bloco mais interno é rejeitado
    - Instruções desconhecidas são descartadas (compatibilidade futura)
    - Bloco não fechado ao fim da entrada:
        * strict (padrão): erro estrutural
        * lenient: fechamento implícito, registrado em `warnings`

Invariantes:
    - A mesma sequência sempre produz a mesma árvore
    - Nenhum efeito colateral: seguro para memoização

Limites explícitos:
    - Não executa stages
    - Não avalia iteradores nem predicados
    - Não interage com Context
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from kitchen_flow.core.exceptions import WorkflowStructureError
from kitchen_flow.core.workflow.builder import Workflow
from kitchen_flow.core.workflow.instructions import (
    ConditionalEnd,
    ConditionalStart,
    LoopEnd,
    LoopStart,
    ParallelEnd,
    ParallelStart,
    StageInstruction,
)
from kitchen_flow.core.workflow.ir import (
    ConditionalNode,
    LoopNode,
    Node,
    ParallelNode,
    StageNode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledWorkflow:
    """Resultado da compilação: a IR e os warnings estruturais (modo lenient)."""

    name: str
    nodes: Tuple[Node, ...]
    warnings: Tuple[str, ...] = ()


@dataclass
class _Frame:
    kind: str  # "root" | "loop" | "conditional" | "parallel"
    opener: Any = None
    position: Optional[int] = None
    body: List[Node] = field(default_factory=list)

    def label(self) -> str:
        if self.kind == "loop":
            return f"loop '{self.opener.name}'"
        return self.kind


def _close(frame: _Frame) -> Node:
    body = tuple(frame.body)
    if frame.kind == "loop":
        opts = dict(frame.opener.opts)
        iterator = opts.pop("over")
        return LoopNode(name=frame.opener.name, iterator=iterator, body=body, options=opts)
    if frame.kind == "conditional":
        return ConditionalNode(predicate=frame.opener.predicate, body=body)
    return ParallelNode(options=dict(frame.opener.opts), body=body)


def _structure_error(problem: str, *, position: Optional[int], block: Optional[str]) -> WorkflowStructureError:
    return WorkflowStructureError(
        message=problem,
        details={"position": position, "block": block},
    )


def _close_expected(stack: List[_Frame], kind: str, position: int, name: Optional[str] = None) -> None:
    top = stack[-1]
    marker = f"{kind}_end" + (f" '{name}'" if name is not None else "")

    if top.kind == "root":
        raise _structure_error(
            f"Unmatched {marker} at position {position}: no open block",
            position=position,
            block=kind,
        )
    if top.kind != kind:
        raise _structure_error(
            f"Out-of-order {marker} at position {position}: innermost open block is {top.label()}",
            position=position,
            block=top.label(),
        )
    if kind == "loop" and top.opener.name != name:
        raise _structure_error(
            f"Mismatched {marker} at position {position}: innermost open block is {top.label()}",
            position=position,
            block=top.label(),
        )

    stack.pop()
    stack[-1].body.append(_close(top))


def compile_instructions(
    instructions: Iterable[Any],
    *,
    strict: bool = True,
    warnings: Optional[List[str]] = None,
) -> Tuple[Node, ...]:
    """
    Compila uma sequência plana de instruções em uma tupla de nós de IR.

    Args:
        instructions (Iterable[Any]): Instruções na ordem declarada.
        strict (bool): Rejeita blocos não fechados ao fim da entrada.
        warnings (Optional[List[str]]): Lista que recebe warnings do modo lenient.

    Returns:
        Tuple[Node, ...]: Nós de topo, com corpos recursivamente compilados.

    Raises:
        WorkflowStructureError: Marcadores desemparelhados, fora de ordem,
            loop sem `over` ou (strict) bloco não fechado.
    """
    stack: List[_Frame] = [_Frame(kind="root")]

    for position, instr in enumerate(instructions):
        if isinstance(instr, StageInstruction):
            stack[-1].body.append(StageNode(name=instr.name, impl=instr.impl, options=dict(instr.opts)))

        elif isinstance(instr, LoopStart):
            if "over" not in instr.opts:
                raise _structure_error(
                    f"Loop '{instr.name}' at position {position} requires an 'over' iterator",
                    position=position,
                    block=f"loop '{instr.name}'",
                )
            stack.append(_Frame(kind="loop", opener=instr, position=position))

        elif isinstance(instr, ConditionalStart):
            stack.append(_Frame(kind="conditional", opener=instr, position=position))

        elif isinstance(instr, ParallelStart):
            stack.append(_Frame(kind="parallel", opener=instr, position=position))

        elif isinstance(instr, LoopEnd):
            _close_expected(stack, "loop", position, instr.name)

        elif isinstance(instr, ConditionalEnd):
            _close_expected(stack, "conditional", position)

        elif isinstance(instr, ParallelEnd):
            _close_expected(stack, "parallel", position)

        else:
            logger.debug("Skipping unknown instruction at position %d: %r", position, instr)

    while len(stack) > 1:
        frame = stack.pop()
        problem = f"Unclosed {frame.label()} opened at position {frame.position}"
        if strict:
            raise _structure_error(problem, position=frame.position, block=frame.label())
        logger.warning("%s; closing implicitly", problem)
        if warnings is not None:
            warnings.append(f"{problem}; closed implicitly at end of definition")
        stack[-1].body.append(_close(frame))

    return tuple(stack[0].body)


def compile_workflow(workflow: Workflow, *, strict: bool = True) -> CompiledWorkflow:
    """Compila um `Workflow` nomeado, coletando warnings estruturais."""
    collected: List[str] = []
    nodes = compile_instructions(workflow.instructions, strict=strict, warnings=collected)
    return CompiledWorkflow(name=workflow.name, nodes=nodes, warnings=tuple(collected))
