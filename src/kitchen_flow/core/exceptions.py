"""
Kitchen Flow — Canonical Exceptions (v1)

Este módulo define exceções tipadas internas do Kitchen Flow.

Objetivo:
- Permitir que Stages/Runner sinalizem falhas semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Separar falhas *reportadas* (esperadas) de faults inesperados

Regras:
- Exceções carregam apenas dados estruturados em `details`
- Faults inesperados sem rollback NUNCA são encapsulados aqui:
  eles propagam inalterados até o chamador do Runner
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from kitchen_flow.core.errors import (
    ErrorPayload,
    adapter_not_found,
    stage_execution_failed,
    stage_rolled_back,
    stage_validation_failed,
    workflow_structure_error,
)
from kitchen_flow.core.workflow.types import FailureKind


@dataclass(frozen=True, eq=False)
class KitchenException(Exception):
    """Base class para exceções internas do Kitchen Flow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Estrutura / Compilação
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class WorkflowStructureError(KitchenException):
    """Sequência de instruções com aninhamento inválido (erro de compilação)."""

    def to_payload(self) -> ErrorPayload:
        return workflow_structure_error(
            problem=self.message,
            position=self.details.get("position"),
            block=self.details.get("block"),
        )


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class StageFailure(KitchenException):
    """Falha *esperada* levantada por um Stage.

    Equivale a retornar `StageError(reason)` de `execute`: o Runner a trata
    como falha reportada (não como fault) e não aciona rollback.
    """

    reason: Any = None


@dataclass(frozen=True, eq=False)
class StageFailed(KitchenException):
    """Falha estruturada de um stage, propagada pelo Runner.

    Campos:
    - stage: nome do stage (nó do workflow) que falhou
    - reason: motivo reportado (ou o fault original, quando houve rollback)
    - kind: validação, execução reportada ou fault com rollback
    - context: contexto associado à falha (o retornado pelo rollback, se houver)
    - loop_path: ((loop, índice, item), ...) das iterações ativas na falha
    """

    stage: str = ""
    reason: Any = None
    kind: FailureKind = FailureKind.EXECUTION
    context: Any = field(default=None, repr=False)
    loop_path: Tuple[Tuple[str, int, Any], ...] = ()

    @classmethod
    def validation(cls, *, stage: str, reason: Any, context: Any, loop_path=()) -> "StageFailed":
        return cls(
            message=f"Stage '{stage}' failed validation",
            details={"stage": stage},
            stage=stage,
            reason=reason,
            kind=FailureKind.VALIDATION,
            context=context,
            loop_path=tuple(loop_path),
        )

    @classmethod
    def execution(cls, *, stage: str, reason: Any, context: Any, loop_path=()) -> "StageFailed":
        return cls(
            message=f"Stage '{stage}' failed: {reason!r}",
            details={"stage": stage},
            stage=stage,
            reason=reason,
            kind=FailureKind.EXECUTION,
            context=context,
            loop_path=tuple(loop_path),
        )

    @classmethod
    def rolled_back(cls, *, stage: str, fault: BaseException, context: Any, loop_path=()) -> "StageFailed":
        return cls(
            message=f"Stage '{stage}' raised {fault.__class__.__name__}; rollback applied",
            details={"stage": stage, "exception_class": fault.__class__.__name__},
            stage=stage,
            reason=fault,
            kind=FailureKind.ROLLBACK,
            context=context,
            loop_path=tuple(loop_path),
        )

    def with_loop_path(self, loop_path) -> "StageFailed":
        return replace(self, details=dict(self.details), loop_path=tuple(loop_path))

    def with_context(self, context: Any) -> "StageFailed":
        return replace(self, details=dict(self.details), context=context)

    def to_payload(self) -> ErrorPayload:
        if self.kind is FailureKind.VALIDATION:
            return stage_validation_failed(stage=self.stage, reason=self.reason, loop_path=self.loop_path)
        if self.kind is FailureKind.ROLLBACK:
            return stage_rolled_back(stage=self.stage, fault=self.reason, loop_path=self.loop_path)
        return stage_execution_failed(stage=self.stage, reason=self.reason, loop_path=self.loop_path, hint=self.hint)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class AdapterNotFound(KitchenException):
    """Port lógico solicitado por um stage não está registrado no contexto."""

    def to_payload(self) -> ErrorPayload:
        return adapter_not_found(
            port=self.details.get("port", ""),
            available=list(self.details.get("available", [])),
            stage=self.details.get("stage"),
        )
