# src/kitchen_flow/core/config/hashing.py
"""
Hashing canônico de configuração do Kitchen Flow.

O hash representa a identidade estrutural da configuração efetiva de uma
run e é registrado no Manifest para rastreabilidade.

Política (v1):
    - Serialização JSON canônica (chaves ordenadas, separadores compactos)
    - Valores não serializáveis são representados por `str(value)`
    - Codificação UTF-8, algoritmo SHA-256
"""


import json
import hashlib
from typing import Any, Mapping


def compute_config_hash(config: Mapping[str, Any]) -> str:
    """
    Gera um hash determinístico da configuração efetiva da run.

    Args:
        config (Mapping[str, Any]): Configuração efetiva (dict ou mapping somente leitura).

    Returns:
        str: Hash SHA-256 hexadecimal (64 caracteres) da configuração.

    Raises:
        TypeError: Se o objeto fornecido não for um mapping.
    """

    if not isinstance(config, Mapping):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        dict(config),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )

    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
