"""
Kitchen Flow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de payloads de erro do Kitchen Flow.
Falhas de workflow fazem parte do contrato operacional do Runner e devem ser:

- explícitas
- serializáveis
- rastreáveis até o stage (e a iteração) que falhou

Nenhum stack trace cru é exposto no payload.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Kitchen Flow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Stages
STAGE_VALIDATION_FAILED = "STAGE_VALIDATION_FAILED"
STAGE_EXECUTION_FAILED = "STAGE_EXECUTION_FAILED"
STAGE_ROLLED_BACK = "STAGE_ROLLED_BACK"

# Estrutura / Compilação
WORKFLOW_STRUCTURE_ERROR = "WORKFLOW_STRUCTURE_ERROR"

# Adapters
ADAPTER_NOT_FOUND = "ADAPTER_NOT_FOUND"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def describe_reason(reason: Any) -> Any:
    if reason is None or isinstance(reason, (str, int, float, bool)):
        return reason
    if isinstance(reason, BaseException):
        return f"{reason.__class__.__name__}: {reason}"
    return repr(reason)


def loop_path_details(loop_path: Any) -> List[Dict[str, Any]]:
    return [
        {"loop": name, "index": index, "item": describe_reason(item)}
        for name, index, item in (loop_path or ())
    ]


def stage_validation_failed(
    *,
    stage: str,
    reason: Any,
    loop_path: Any = (),
    hint: str = "Garanta que os stages anteriores produzam o estado exigido por este stage.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STAGE_VALIDATION_FAILED,
        message="Stage rejeitou o contexto antes da execução",
        details={
            "stage": stage,
            "reason": describe_reason(reason),
            "loop_path": loop_path_details(loop_path),
        },
        hint=hint,
    )


def stage_execution_failed(
    *,
    stage: str,
    reason: Any,
    loop_path: Any = (),
    hint: Optional[str] = None,
) -> ErrorPayload:
    return ErrorPayload(
        type=STAGE_EXECUTION_FAILED,
        message="Stage reportou falha durante a execução",
        details={
            "stage": stage,
            "reason": describe_reason(reason),
            "loop_path": loop_path_details(loop_path),
        },
        hint=hint,
    )


def stage_rolled_back(
    *,
    stage: str,
    fault: BaseException,
    loop_path: Any = (),
    hint: str = "Falha inesperada no stage; o rollback foi aplicado. Verifique o log técnico.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STAGE_ROLLED_BACK,
        message="Falha inesperada no stage (rollback aplicado)",
        details={
            "stage": stage,
            "exception_class": fault.__class__.__name__,
            "reason": str(fault),
            "loop_path": loop_path_details(loop_path),
        },
        hint=hint,
    )


def workflow_structure_error(
    *,
    problem: str,
    position: Optional[int] = None,
    block: Optional[str] = None,
    hint: str = "Verifique se cada bloco (loop/conditional/parallel) possui exatamente um marcador de fim correspondente.",
) -> ErrorPayload:
    return ErrorPayload(
        type=WORKFLOW_STRUCTURE_ERROR,
        message="Definição de workflow estruturalmente inválida",
        details={
            "problem": problem,
            "position": position,
            "block": block,
        },
        hint=hint,
    )


def adapter_not_found(
    *,
    port: str,
    available: List[str],
    stage: Optional[str] = None,
) -> ErrorPayload:
    return ErrorPayload(
        type=ADAPTER_NOT_FOUND,
        message="Adapter não registrado no contexto",
        details={
            "port": port,
            "available": sorted(available),
            "stage": stage,
        },
        hint="Informe o adapter em `adapters` ao criar o contexto da run.",
    )
