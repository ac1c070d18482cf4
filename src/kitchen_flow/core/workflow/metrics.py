# src/kitchen_flow/core/workflow/metrics.py
"""
Observações de métricas acumuladas durante uma run.

Stages registram métricas (ex.: loss por step) via `Context.record_metric`.
O log de métricas é append-only e sempre lido em ordem cronológica.

Este módulo também oferece a visão tabular do log (pandas.DataFrame),
usada para análise pós-run e relatórios.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd


METRIC_COLUMNS = ["name", "value", "step", "timestamp"]


@dataclass(frozen=True)
class Metric:
    """Uma observação de métrica (imutável)."""

    name: str
    value: float
    step: Optional[int]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "step": self.step,
            "timestamp": self.timestamp.isoformat(),
        }


def metrics_to_frame(metrics: Iterable[Metric]) -> pd.DataFrame:
    """
    Converte observações de métricas em um DataFrame cronológico.

    Colunas: name, value, step, timestamp. A ordem das linhas é a ordem
    de registro; um log vazio produz um DataFrame vazio com as mesmas colunas.
    """
    rows: List[Dict[str, Any]] = [
        {"name": m.name, "value": m.value, "step": m.step, "timestamp": m.timestamp}
        for m in metrics
    ]
    if not rows:
        return pd.DataFrame(columns=METRIC_COLUMNS)
    return pd.DataFrame(rows, columns=METRIC_COLUMNS)
