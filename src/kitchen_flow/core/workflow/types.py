# src/kitchen_flow/core/workflow/types.py
"""
Tipos canônicos do workflow do Kitchen Flow.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Stages, Runner e camadas de rastreabilidade.

Componentes principais:
    - RunStatus   → estados terminais de uma run (SUCCEEDED, FAILED)
    - FailureKind → classificação de falhas de stage
    - EventType   → tipos de evento do ciclo de vida de um stage
    - StageError  → falha *esperada* retornada por `validate`/`execute`
    - StageEvent  → evento de instrumentação emitido pelo Runner
    - RunResult   → resultado imutável de uma execução

Princípios fundamentais:
    - Tipos são estáveis e serializáveis
    - Nenhuma lógica de execução vive neste módulo

Limites explícitos:
    - Não executa Stages
    - Não compila workflows
    - Não decide políticas de execução
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from kitchen_flow.core.exceptions import StageFailed
    from .context import Context


class RunStatus(str, Enum):
    """
    Estados terminais de uma execução do Runner.

    Estados intermediários (compiling, running) não pertencem a este enum:
    o Runner só devolve um RunResult depois de atingir um estado terminal.
    """
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """
    Classificação de uma falha de stage.

    - VALIDATION: `validate` rejeitou o contexto; `execute` não foi chamado
    - EXECUTION: `execute` retornou `StageError` (ou levantou `StageFailure`)
    - ROLLBACK: `execute` levantou um fault inesperado e o stage fez rollback

    Faults inesperados sem rollback não possuem kind: não viram falha
    estruturada e propagam inalterados.
    """
    VALIDATION = "validation"
    EXECUTION = "execution"
    ROLLBACK = "rollback"


class EventType(str, Enum):
    """Tipos de evento do span de execução de um stage."""
    START = "start"
    STOP = "stop"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class StageError:
    """
    Falha esperada retornada por um Stage.

    `execute` retorna `StageError` no lugar de um Context para reportar
    uma falha de negócio (ex.: backend recusou a requisição). `validate`
    retorna `StageError` para recusar o contexto antes da execução.

    O Runner encapsula o motivo junto ao nome do stage e interrompe a run.
    """
    reason: Any
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StageEvent:
    """
    Evento de instrumentação do ciclo de vida de um stage.

    Campos:
        - event_type: start | stop | exception
        - stage: nome do nó de stage no workflow
        - impl: identificador da implementação (módulo.classe)
        - timestamp: instante UTC do evento
        - success: None em `start`; True/False nos eventos terminais
        - error: motivo da falha (quando houver)
        - duration_ms: duração do span (eventos terminais)
        - loop_path: iterações ativas no momento do evento
        - run_id: identificador da run
    """
    event_type: EventType
    stage: str
    impl: str
    timestamp: datetime
    success: Optional[bool] = None
    error: Any = None
    duration_ms: Optional[int] = None
    loop_path: Tuple[Tuple[str, int, Any], ...] = ()
    run_id: Optional[str] = None


@dataclass(frozen=True)
class RunResult:
    """
    Resultado imutável de `Runner.run` / `Runner.execute_nodes`.

    Em caso de sucesso, `context` é o contexto final e `error` é None.
    Em caso de falha, `error` identifica o stage (e a iteração) que falhou
    e `context` é o último contexto conhecido antes da falha (ou o contexto
    devolvido pelo rollback).
    """
    status: RunStatus
    context: "Context"
    error: Optional["StageFailed"] = None

    @property
    def ok(self) -> bool:
        return self.status is RunStatus.SUCCEEDED

    @classmethod
    def succeeded(cls, context: "Context") -> "RunResult":
        return cls(status=RunStatus.SUCCEEDED, context=context)

    @classmethod
    def failed(cls, error: "StageFailed", context: "Context") -> "RunResult":
        return cls(status=RunStatus.FAILED, context=context, error=error)
