# src/kitchen_flow/logging_config.py
"""Configuração de logging padrão para scripts e notebooks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def resolve_level(level: Union[int, str]) -> int:
    """Converte um nível (inteiro ou nome, sem diferenciar caixa) no inteiro do `logging`."""
    if isinstance(level, bool):
        raise ValueError(f"Unknown log level: {level!r}")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def configure_logging(level: Union[int, str] = logging.INFO, log_dir: Optional[str] = None) -> None:
    """
    Configura o `logging` da biblioteca padrão.

    Com `log_dir`, as linhas também são gravadas em `<log_dir>/run.log`.
    `level` aceita o inteiro do `logging` ou o nome ("DEBUG", "INFO", ...),
    como em `engine.log_level`.
    """
    resolved = resolve_level(level)
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(Path(log_dir) / "run.log", encoding="utf-8"))

    logging.basicConfig(level=resolved, format=DEFAULT_LOG_FORMAT, handlers=handlers, force=True)
