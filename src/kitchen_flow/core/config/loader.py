# src/kitchen_flow/core/config/loader.py
"""
Loader canônico de configuração do Kitchen Flow.

A configuração de uma run é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional)

Responsabilidades do módulo:
    - Carregar arquivos em YAML ou JSON
    - Validar que o conteúdo raiz é um mapa chave-valor
    - Resolver a configuração final via deep-merge determinístico

O mesmo leitor (`load_mapping_file`) é usado para definições declarativas
de workflow (ver `kitchen_flow.core.workflow.definition`).
"""

from pathlib import Path
from typing import Any, Dict, Optional, Type, Union
import json
import logging

import yaml  # PyYAML

from .merge import deep_merge
from .hashing import compute_config_hash
from .errors import (
    ConfigFileNotFoundError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)

logger = logging.getLogger(__name__)


def _load_file(
    path: Path,
    *,
    missing_error: Type[ConfigFileNotFoundError] = ConfigFileNotFoundError,
) -> Dict[str, Any]:
    """
    Carrega um arquivo YAML/JSON e valida sua estrutura básica.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        ConfigFileNotFoundError: Se o arquivo não existir (ou a subclasse informada).
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise missing_error(f"Arquivo não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_mapping_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Lê um arquivo YAML/JSON cujo conteúdo raiz é um dicionário."""
    return _load_file(Path(path))


def load_config(
    *,
    defaults_path: str,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva de uma run.

    Política de resolução:
        - O arquivo de defaults é obrigatório
        - O arquivo local é opcional; quando ausente no disco é ignorado
        - Quando presente, o local sempre tem prioridade sobre defaults

    Args:
        defaults_path (str): Caminho para o arquivo de configuração base.
        local_path (Optional[str]): Caminho opcional para overrides locais.

    Returns:
        Dict[str, Any]: Configuração final resolvida.

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """

    defaults = _load_file(Path(defaults_path), missing_error=DefaultsNotFoundError)

    effective = defaults

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            local = _load_file(local_file)
            effective = deep_merge(defaults, local)
        else:
            logger.debug("Local config not found, using defaults only: %s", local_file)

    logger.debug("Resolved config hash=%s", compute_config_hash(effective))

    return effective
