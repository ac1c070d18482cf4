# src/kitchen_flow/core/workflow/registry.py
"""
Registro nomeado de stages, iteradores e predicados.

Definições declarativas (dict/YAML) não podem carregar objetos Python;
elas referenciam stages, iteradores de loop e predicados de conditional
por nome. O `StageRegistry` resolve esses nomes durante o carregamento
da definição.

Decisões arquiteturais:
    - Nomes devem ser strings não vazias
    - Duplicidade é tratada como erro fatal de configuração
    - A ordem de registro é preservada para listagem

Limites explícitos:
    - Não compila nem executa workflows
    - Não interage com Context
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


class DuplicateRegistrationError(ValueError):
    """
    Exceção levantada quando um nome já registrado é registrado novamente.

    Nomes são a chave de resolução de definições declarativas; duplicidade
    tornaria a resolução ambígua e é rejeitada no momento do registro.
    """


class UnknownRegistrationError(KeyError):
    """Exceção levantada quando uma definição referencia um nome não registrado."""


def _check_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("registry name must be a non-empty string")
    return name


@dataclass
class _Namespace:
    kind: str
    _items: Dict[str, Any] = field(default_factory=dict, repr=False)
    _order: List[str] = field(default_factory=list, repr=False)

    def add(self, name: str, value: Any) -> None:
        name = _check_name(name)
        if name in self._items:
            raise DuplicateRegistrationError(f"Duplicate {self.kind} name: {name}")
        self._items[name] = value
        self._order.append(name)

    def get(self, name: str) -> Any:
        if name not in self._items:
            raise UnknownRegistrationError(f"Unknown {self.kind}: {name}")
        return self._items[name]

    def names(self) -> List[str]:
        return list(self._order)


class StageRegistry:
    """
    Registro canônico para resolução de definições declarativas.

    Três namespaces independentes:
        - stages: nome -> implementação de stage (instância ou classe)
        - iterators: nome -> callable (Context) -> Iterable
        - predicates: nome -> callable (Context) -> bool
    """

    def __init__(self) -> None:
        self._stages = _Namespace("stage")
        self._iterators = _Namespace("iterator")
        self._predicates = _Namespace("predicate")

    def add_stage(self, name: str, impl: Any) -> "StageRegistry":
        self._stages.add(name, impl)
        return self

    def add_iterator(self, name: str, fn: Callable[..., Any]) -> "StageRegistry":
        self._iterators.add(name, fn)
        return self

    def add_predicate(self, name: str, fn: Callable[..., Any]) -> "StageRegistry":
        self._predicates.add(name, fn)
        return self

    def stage(self, name: str) -> Any:
        impl = self._stages.get(name)
        return impl() if isinstance(impl, type) else impl

    def iterator(self, name: str) -> Callable[..., Any]:
        return self._iterators.get(name)

    def predicate(self, name: str) -> Callable[..., Any]:
        return self._predicates.get(name)

    def stage_names(self) -> List[str]:
        return self._stages.names()
