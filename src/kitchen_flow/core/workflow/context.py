# src/kitchen_flow/core/workflow/context.py
"""
Contexto de execução compartilhado do workflow.

Este módulo define o `Context`, a estrutura canônica threaded por todos
os stages durante uma run do Kitchen Flow.

O Context atua como o único meio permitido de:
    - troca de dados entre stages (state store)
    - acesso à configuração imutável da run
    - acesso a adapters (ports lógicos para backends externos)
    - acúmulo de métricas
    - registro de logs estruturados e warnings por stage

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Configuração e adapters são somente leitura durante a run
    - State e métricas só crescem ou são sobrescritos por chave
    - Nenhum estado global é compartilhado entre runs

Invariantes:
    - `config` e `adapters` não podem ser alterados após a criação
    - Métricas são lidas sempre em ordem cronológica
    - `current_stage`/`stage_opts` refletem o stage em execução

Limites explícitos:
    - Não executa stages
    - Não compila nem interpreta workflows
    - Não persiste dados automaticamente
"""

from __future__ import annotations

import copy
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Set

import pandas as pd

from kitchen_flow.core.exceptions import AdapterNotFound

from .metrics import Metric, metrics_to_frame

logger = logging.getLogger(__name__)


def _new_run_id() -> str:
    return f"run_{int(time.time())}_{secrets.token_hex(4)}"


def _branch_copy(state: Dict[str, Any]) -> Dict[str, Any]:
    memo: Dict[int, Any] = {}
    out: Dict[str, Any] = {}
    for key, value in state.items():
        try:
            out[key] = copy.deepcopy(value, memo)
        except (TypeError, copy.Error) as exc:
            # locks, sockets, clientes de backend: compartilhados por referência
            logger.debug("State key %r shared with branch (not copyable: %s)", key, exc)
            out[key] = value
    return out


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping or {}))


@dataclass
class Context:
    """
    Contexto de execução de uma run de workflow.

    Campos canônicos:
    - config: configuração imutável da run (somente leitura)
    - adapters: port lógico -> implementação (somente leitura)
    - state: store mutável chave -> valor, único canal entre stages
    - metadata: run_id, started_at e metadados livres da run
    - current_stage / stage_opts: stage em execução (definidos pelo Runner)
    - events: log estruturado de eventos da run
    - warnings: warnings por stage

    Stages podem mutar o contexto recebido e retorná-lo, ou retornar um
    novo contexto; o Runner sempre segue com o contexto retornado.
    """

    config: Mapping[str, Any] = field(default_factory=dict)
    adapters: Mapping[str, Any] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    current_stage: Optional[str] = None
    stage_opts: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list)
    warnings: Dict[str, List[str]] = field(default_factory=dict)

    _metrics: List[Metric] = field(default_factory=list, repr=False)
    _writes: Optional[Set[str]] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.config = _freeze(self.config)
        self.adapters = _freeze(self.adapters)

    @classmethod
    def new(
        cls,
        config: Optional[Mapping[str, Any]] = None,
        adapters: Optional[Mapping[str, Any]] = None,
        **metadata: Any,
    ) -> "Context":
        """Cria o contexto inicial de uma run, com run_id e timestamp UTC."""
        meta: Dict[str, Any] = {
            "run_id": _new_run_id(),
            "started_at": datetime.now(timezone.utc),
        }
        meta.update(metadata)
        return cls(config=config or {}, adapters=adapters or {}, metadata=meta)

    @property
    def run_id(self) -> Optional[str]:
        return self.metadata.get("run_id")

    # -----------------------------
    # Config & adapters
    # -----------------------------
    def get_config(self, key: str, default: Any = None) -> Any:
        return self.config.get(key, default)

    def get_adapter(self, port: str) -> Any:
        if port not in self.adapters:
            raise AdapterNotFound(
                message=f"Adapter not found for port '{port}'",
                details={
                    "port": port,
                    "available": list(self.adapters),
                    "stage": self.current_stage,
                },
            )
        return self.adapters[port]

    def has_adapter(self, port: str) -> bool:
        return port in self.adapters

    # -----------------------------
    # State store
    # -----------------------------
    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def put_state(self, key: str, value: Any) -> "Context":
        self.state[key] = value
        if self._writes is not None:
            self._writes.add(key)
        return self

    def has_state(self, key: str) -> bool:
        return key in self.state

    def delete_state(self, key: str) -> "Context":
        """Remoção intencional de uma chave (no-op se ausente)."""
        self.state.pop(key, None)
        if self._writes is not None:
            self._writes.add(key)
        return self

    # -----------------------------
    # Métricas
    # -----------------------------
    def record_metric(self, name: str, value: float, *, step: Optional[int] = None) -> "Context":
        self._metrics.append(
            Metric(
                name=name,
                value=float(value),
                step=step,
                timestamp=datetime.now(timezone.utc),
            )
        )
        return self

    def get_metrics(self, name: Optional[str] = None) -> List[Metric]:
        """Retorna as métricas em ordem cronológica (opcionalmente filtradas)."""
        if name is None:
            return list(self._metrics)
        return [m for m in self._metrics if m.name == name]

    @property
    def metrics(self) -> List[Metric]:
        return self.get_metrics()

    def metrics_frame(self) -> pd.DataFrame:
        return metrics_to_frame(self._metrics)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, stage: Optional[str] = None, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "stage": stage if stage is not None else self.current_stage,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, stage: str, message: str) -> None:
        if stage not in self.warnings:
            self.warnings[stage] = []
        self.warnings[stage].append(message)

    # -----------------------------
    # Branching (parallel)
    # -----------------------------
    def fork(self) -> "Context":
        """
        Cria uma cópia isolada para um ramo paralelo (copy-on-branch).

        Os valores de state são copiados em profundidade: mutações in-place
        em um ramo não são vistas pelos irmãos nem pelo pai. Valores que não
        suportam `deepcopy` (locks, sockets, clientes de backend) são
        compartilhados por referência. Metadata, warnings, eventos e métricas
        são copiados superficialmente. Config e adapters são imutáveis e
        compartilhados.

        O fork registra as chaves escritas via `put_state`/`delete_state`
        (`written_keys`), usadas na consolidação do ramo.
        """
        return Context(
            config=self.config,
            adapters=self.adapters,
            state=_branch_copy(self.state),
            metadata=dict(self.metadata),
            current_stage=self.current_stage,
            stage_opts=dict(self.stage_opts),
            events=list(self.events),
            warnings={k: list(v) for k, v in self.warnings.items()},
            _metrics=list(self._metrics),
            _writes=set(),
        )

    @property
    def written_keys(self) -> Optional[Set[str]]:
        """Chaves escritas ou removidas desde o fork (None fora de um ramo)."""
        return None if self._writes is None else set(self._writes)
