# src/kitchen_flow/core/workflow/ir.py
"""
Representação intermediária (IR) de um workflow compilado.

A IR é uma árvore de nós imutáveis interpretada pelo Runner sem
re-escanear marcadores em tempo de execução:

    - StageNode       → folha; uma unidade de trabalho
    - LoopNode        → corpo executado uma vez por item do iterador
    - ConditionalNode → corpo executado 0 ou 1 vez
    - ParallelNode    → corpo nominalmente concorrente

Corpos são sempre tuplas de nós já compilados.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple, Union

from .stage import impl_id


@dataclass(frozen=True)
class StageNode:
    name: str
    impl: Any
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoopNode:
    name: str
    iterator: Any
    body: Tuple["Node", ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def state_key(self) -> str:
        """Chave de state que recebe o item corrente a cada iteração."""
        return f"{self.name}_current"


@dataclass(frozen=True)
class ConditionalNode:
    predicate: Any
    body: Tuple["Node", ...] = ()


@dataclass(frozen=True)
class ParallelNode:
    options: Dict[str, Any] = field(default_factory=dict)
    body: Tuple["Node", ...] = ()


Node = Union[StageNode, LoopNode, ConditionalNode, ParallelNode]


def _callable_label(value: Any) -> str:
    if callable(value):
        return getattr(value, "__qualname__", None) or repr(value)
    return repr(value)


def describe_nodes(nodes: Sequence[Node]) -> List[Dict[str, Any]]:
    """
    Gera um resumo serializável (JSON) da árvore de IR.

    Callables (iteradores/predicados) são representados pelo qualname;
    literais pelo repr. Usado no Manifest e em diagnósticos.
    """
    out: List[Dict[str, Any]] = []
    for node in nodes:
        if isinstance(node, StageNode):
            out.append({"type": "stage", "name": node.name, "impl": impl_id(node.impl)})
        elif isinstance(node, LoopNode):
            out.append(
                {
                    "type": "loop",
                    "name": node.name,
                    "over": _callable_label(node.iterator),
                    "body": describe_nodes(node.body),
                }
            )
        elif isinstance(node, ConditionalNode):
            out.append(
                {
                    "type": "conditional",
                    "predicate": _callable_label(node.predicate),
                    "body": describe_nodes(node.body),
                }
            )
        elif isinstance(node, ParallelNode):
            out.append(
                {
                    "type": "parallel",
                    "max_concurrency": _callable_label(node.options.get("max_concurrency")),
                    "body": describe_nodes(node.body),
                }
            )
    return out

