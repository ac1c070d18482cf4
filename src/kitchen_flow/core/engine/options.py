# src/kitchen_flow/core/engine/options.py
"""
Opções de execução do Runner.

As opções são lidas da seção `engine:` da configuração da run:

    engine:
      strict_structure: true      # rejeita blocos não fechados na compilação
      log_level: INFO             # nível do logger `kitchen_flow` (ausente = não altera)
      parallel:
        mode: sequential          # sequential | threads
        max_concurrency: 4        # default para blocos parallel sem limite próprio

Valores ausentes assumem os defaults abaixo. Valores inválidos são
rejeitados com `EngineConfigurationError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from kitchen_flow.core.exceptions import KitchenException
from kitchen_flow.logging_config import resolve_level


class ParallelMode(str, Enum):
    SEQUENTIAL = "sequential"
    THREADS = "threads"


class EngineConfigurationError(KitchenException):
    """Seção `engine:` da configuração com valor inválido."""


@dataclass(frozen=True)
class RunnerOptions:
    strict_structure: bool = True
    parallel_mode: ParallelMode = ParallelMode.SEQUENTIAL
    default_max_concurrency: Optional[int] = None
    log_level: Optional[str] = None

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "RunnerOptions":
        engine_cfg = (config or {}).get("engine", {}) or {}
        parallel_cfg = engine_cfg.get("parallel", {}) or {}

        raw_mode = parallel_cfg.get("mode", ParallelMode.SEQUENTIAL.value)
        try:
            mode = ParallelMode(raw_mode)
        except ValueError:
            raise EngineConfigurationError(
                message=f"Invalid engine.parallel.mode: {raw_mode!r}",
                details={"key": "engine.parallel.mode", "allowed": [m.value for m in ParallelMode]},
            ) from None

        max_concurrency = parallel_cfg.get("max_concurrency")
        if max_concurrency is not None and (
            isinstance(max_concurrency, bool) or not isinstance(max_concurrency, int) or max_concurrency < 1
        ):
            raise EngineConfigurationError(
                message=f"Invalid engine.parallel.max_concurrency: {max_concurrency!r}",
                details={"key": "engine.parallel.max_concurrency"},
            )

        log_level = engine_cfg.get("log_level")
        if log_level is not None:
            try:
                level = resolve_level(log_level)
            except ValueError:
                raise EngineConfigurationError(
                    message=f"Invalid engine.log_level: {log_level!r}",
                    details={"key": "engine.log_level"},
                ) from None
            log_level = logging.getLevelName(level)

        return cls(
            strict_structure=bool(engine_cfg.get("strict_structure", True)),
            parallel_mode=mode,
            default_max_concurrency=max_concurrency,
            log_level=log_level,
        )
