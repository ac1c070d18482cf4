# src/kitchen_flow/core/config/merge.py
"""
Combinação de configurações em camadas (defaults ← overrides locais).

Uma run de treinamento costuma ter um arquivo de defaults versionado e um
arquivo local com ajustes da máquina ou do experimento (épocas, batch size,
`engine.parallel`). `deep_merge` resolve as duas camadas em um único dict:

    - seções (dicts) presentes nas duas camadas são combinadas chave a chave
    - listas do override substituem a lista base inteira
    - `None` em qualquer lado é substituído pelo override (desliga a opção)
    - int e float são intercambiáveis (`lr: 1` sobrescreve `lr: 2.0e-4`)
    - demais valores só podem ser sobrescritos por um valor do mesmo tipo

Nenhuma das camadas recebidas é alterada.
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _replaceable(current: Any, incoming: Any) -> bool:
    if isinstance(incoming, list) or current is None or incoming is None:
        return True
    if _is_number(current) and _is_number(incoming):
        return True
    return type(current) is type(incoming)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Aplica `override` sobre `base` e devolve um dict novo.

    Raises:
        ConfigTypeConflictError: Camadas que não são dicts, ou uma chave cujo
            valor muda de tipo entre as camadas (ex.: `epochs: 3` vs
            `epochs: {warmup: 1}`).
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    merged: Dict[str, Any] = deepcopy(base)

    for key, incoming in override.items():
        current = merged.get(key)

        if key in merged and isinstance(current, dict) and isinstance(incoming, dict):
            merged[key] = deep_merge(current, incoming)
        elif key not in merged or _replaceable(current, incoming):
            merged[key] = deepcopy(incoming)
        else:
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': "
                f"{type(current).__name__} vs {type(incoming).__name__}"
            )

    return merged
