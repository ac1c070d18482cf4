# src/kitchen_flow/core/workflow/stage.py
"""
Contrato canônico de Stage do Kitchen Flow.

Um Stage é a menor unidade executável de um workflow: uma operação
nomeada que recebe o Context e devolve o Context atualizado.

O contrato é um conjunto de capacidades:
    - `Stage`           → `name` + `execute(ctx)` (obrigatório)
    - `ValidatingStage` → `validate(ctx)` (opcional; ausente = sempre passa)
    - `RollbackStage`   → `rollback(ctx, fault)` (opcional)

Regras de retorno:
    - `execute` retorna um `Context` em caso de sucesso
    - `execute` retorna `StageError` (ou levanta `StageFailure`) para falhas
      esperadas; o Runner reporta a falha e interrompe a run
    - qualquer outra exceção é um *fault* inesperado: com `rollback`, vira
      falha estruturada; sem `rollback`, propaga inalterada
    - `validate` retorna None para aprovar ou `StageError` para recusar

Conformidade é garantida por duck typing (`@runtime_checkable`): stages
não precisam herdar de `BaseStage`.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Union, runtime_checkable

from .context import Context
from .types import StageError


StageOutcome = Union[Context, StageError]


@runtime_checkable
class Stage(Protocol):
    """Capacidade obrigatória: executar a unidade de trabalho."""

    name: str

    def execute(self, ctx: Context) -> StageOutcome:
        ...


@runtime_checkable
class ValidatingStage(Protocol):
    """Capacidade opcional: recusar o contexto antes de `execute`."""

    def validate(self, ctx: Context) -> Optional[StageError]:
        ...


@runtime_checkable
class RollbackStage(Protocol):
    """Capacidade opcional: compensar um fault inesperado de `execute`."""

    def rollback(self, ctx: Context, fault: BaseException) -> Context:
        ...


class BaseStage:
    """
    Base de conveniência para stages.

    Oferece acessores ao Context no estilo "ler opção / ler estado / gravar
    estado". Não define `validate` nem `rollback`: subclasses que precisem
    dessas capacidades as implementam explicitamente.
    """

    name: str = "stage"

    def execute(self, ctx: Context) -> StageOutcome:  # pragma: no cover
        raise NotImplementedError

    @staticmethod
    def get_state(ctx: Context, key: str, default: Any = None) -> Any:
        return ctx.get_state(key, default)

    @staticmethod
    def put_state(ctx: Context, key: str, value: Any) -> Context:
        return ctx.put_state(key, value)

    @staticmethod
    def get_config(ctx: Context, key: str, default: Any = None) -> Any:
        return ctx.get_config(key, default)

    @staticmethod
    def get_adapter(ctx: Context, port: str) -> Any:
        return ctx.get_adapter(port)

    @staticmethod
    def get_option(ctx: Context, key: str, default: Any = None) -> Any:
        return (ctx.stage_opts or {}).get(key, default)

    @staticmethod
    def record_metric(ctx: Context, name: str, value: float, *, step: Optional[int] = None) -> Context:
        return ctx.record_metric(name, value, step=step)


def impl_id(impl: Any) -> str:
    """Identificador estável da implementação de um stage (módulo.classe)."""
    cls = impl if isinstance(impl, type) else type(impl)
    return f"{cls.__module__}.{cls.__qualname__}"
