# src/kitchen_flow/core/config/__init__.py

"""
Camada de configuração do Kitchen Flow.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar, validar estruturalmente e identificar a configuração de uma run.

A configuração de uma run é:
    - declarativa (YAML ou JSON)
    - determinística (defaults + overrides locais via deep-merge)
    - imutável depois de entregue ao Context

Além das opções livres consumidas pelos stages, a seção `engine:` controla
o comportamento do Runner (ver `kitchen_flow.core.engine.options`).

Limites explícitos:
    - Não valida semântica de domínio (opções de stages são opacas)
    - Não executa workflows
"""

from .errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config, load_mapping_file
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "deep_merge",
    "load_config",
    "load_mapping_file",
]
