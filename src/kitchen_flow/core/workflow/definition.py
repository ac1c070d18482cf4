# src/kitchen_flow/core/workflow/definition.py
"""
Definições declarativas de workflow (dict / YAML / JSON).

Uma definição declarativa descreve o workflow como dados aninhados e é
achatada na mesma sequência de instruções produzida pelo
`WorkflowBuilder`. Stages, iteradores e predicados são referenciados por
nome e resolvidos via `StageRegistry`.

Formato (v1):

    name: supervised
    steps:
      - stage: load_dataset          # nome do nó
        use: load_dataset            # nome registrado do stage (default: o próprio nome)
        opts: {split: train}
      - loop: epochs
        over: epochs_range           # iterador registrado | lista literal | {config: k} | {state: k}
        body: [...]
      - conditional: should_eval     # predicado registrado | bool literal | {config: k} | {state: k}
        body: [...]
      - parallel: {max_concurrency: 2}
        body: [...]

Entradas com formato desconhecido são repassadas como instruções cruas
e descartadas pelo compilador (compatibilidade futura).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Union

from kitchen_flow.core.config.loader import load_mapping_file
from kitchen_flow.core.exceptions import WorkflowStructureError

from .builder import Workflow
from .instructions import (
    ConditionalEnd,
    ConditionalStart,
    LoopEnd,
    LoopStart,
    ParallelEnd,
    ParallelStart,
    StageInstruction,
)
from .registry import StageRegistry


def _structure_error(problem: str, path: str) -> WorkflowStructureError:
    return WorkflowStructureError(
        message=f"Invalid workflow definition at {path}: {problem}",
        details={"block": path},
    )


def _context_lookup(ref: Mapping[str, Any], path: str) -> Callable[[Any], Any]:
    if set(ref) == {"config"}:
        key = ref["config"]
        return lambda ctx: ctx.get_config(key)
    if set(ref) == {"state"}:
        key = ref["state"]
        return lambda ctx: ctx.get_state(key)
    raise _structure_error(f"unsupported reference {dict(ref)!r}", path)


def _resolve_iterator(value: Any, registry: StageRegistry, path: str) -> Any:
    if isinstance(value, str):
        return registry.iterator(value)
    if isinstance(value, Mapping):
        lookup = _context_lookup(value, path)
        return lambda ctx: lookup(ctx) or []
    if isinstance(value, list):
        return list(value)
    raise _structure_error("'over' must be an iterator name, a list or a context reference", path)


def _resolve_predicate(value: Any, registry: StageRegistry, path: str) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return registry.predicate(value)
    if isinstance(value, Mapping):
        lookup = _context_lookup(value, path)
        return lambda ctx: bool(lookup(ctx))
    raise _structure_error("conditional must be a predicate name, a boolean or a context reference", path)


def _body(entry: Mapping[str, Any], path: str) -> List[Any]:
    body = entry.get("body", [])
    if not isinstance(body, list):
        raise _structure_error("'body' must be a list", path)
    return body


def _flatten(entries: List[Any], registry: StageRegistry, out: List[Any], path: str) -> None:
    for i, entry in enumerate(entries):
        here = f"{path}[{i}]"

        if not isinstance(entry, Mapping):
            out.append(entry)
            continue

        if "stage" in entry:
            name = entry["stage"]
            impl = registry.stage(entry.get("use", name))
            opts = dict(entry.get("opts") or {})
            out.append(StageInstruction(name=name, impl=impl, opts=opts))

        elif "loop" in entry:
            name = entry["loop"]
            if "over" not in entry:
                raise _structure_error(f"loop '{name}' requires 'over'", here)
            opts = dict(entry.get("opts") or {})
            opts["over"] = _resolve_iterator(entry["over"], registry, here)
            out.append(LoopStart(name=name, opts=opts))
            _flatten(_body(entry, here), registry, out, f"{here}.body")
            out.append(LoopEnd(name=name))

        elif "conditional" in entry:
            predicate = _resolve_predicate(entry["conditional"], registry, here)
            out.append(ConditionalStart(predicate=predicate))
            _flatten(_body(entry, here), registry, out, f"{here}.body")
            out.append(ConditionalEnd())

        elif "parallel" in entry:
            opts = dict(entry.get("parallel") or {})
            out.append(ParallelStart(opts=opts))
            _flatten(_body(entry, here), registry, out, f"{here}.body")
            out.append(ParallelEnd())

        else:
            out.append(dict(entry))


def definition_from_data(data: Mapping[str, Any], registry: StageRegistry) -> Workflow:
    """
    Constrói um `Workflow` a partir de uma definição declarativa em memória.

    Raises:
        WorkflowStructureError: Se a definição tiver formato inválido.
        UnknownRegistrationError: Se um nome referenciado não estiver registrado.
    """
    steps = data.get("steps")
    if not isinstance(steps, list):
        raise _structure_error("'steps' must be a list", "steps")

    instructions: List[Any] = []
    _flatten(steps, registry, instructions, "steps")
    return Workflow(name=str(data.get("name", "workflow")), instructions=tuple(instructions))


def load_definition(path: Union[str, Path], registry: StageRegistry) -> Workflow:
    """Lê uma definição declarativa de um arquivo YAML/JSON."""
    data: Dict[str, Any] = load_mapping_file(path)
    return definition_from_data(data, registry)
