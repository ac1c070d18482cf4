# src/kitchen_flow/stages/builtin.py
"""
Stages utilitários: placeholders e semeadura de estado.

- Noop: devolve o contexto inalterado (placeholders, testes)
- SetState: grava `stage_opts["values"]` no state

Exemplo (definição declarativa):

    steps:
      - stage: seed
        use: set_state
        opts:
          values: {global_step: 0}
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from kitchen_flow.core.workflow.context import Context
from kitchen_flow.core.workflow.stage import BaseStage
from kitchen_flow.core.workflow.types import StageError


class Noop(BaseStage):
    name = "noop"

    def execute(self, ctx: Context) -> Context:
        return ctx


class SetState(BaseStage):
    """Grava pares chave/valor fixos no state; sobrescreve chaves existentes."""

    name = "set_state"

    def validate(self, ctx: Context) -> Optional[StageError]:
        values = self.get_option(ctx, "values", {})
        if not isinstance(values, Mapping):
            return StageError(reason="option 'values' must be a mapping", details={"got": type(values).__name__})
        return None

    def execute(self, ctx: Context) -> Context:
        values: Mapping[str, Any] = self.get_option(ctx, "values", {}) or {}
        for key, value in values.items():
            ctx = self.put_state(ctx, key, value)
        return ctx
