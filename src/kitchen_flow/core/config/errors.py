# src/kitchen_flow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Kitchen Flow.

As exceções aqui definidas representam violações estruturais explícitas
durante carregamento e merge de configuração (e de definições
declarativas de workflow lidas do disco), não erros de execução.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção representa falha de stage
"""


class ConfigError(Exception):
    """
    Exceção base para erros relacionados à configuração do Kitchen Flow.

    Permite captura genérica de erros de configuração e distinção clara
    entre falhas estruturais e falhas de execução do workflow.
    """


class ConfigFileNotFoundError(ConfigError):
    """Arquivo de configuração (ou de definição) inexistente."""


class DefaultsNotFoundError(ConfigFileNotFoundError):
    """
    Exceção levantada quando o arquivo de configuração base (defaults)
    não é encontrado no caminho especificado.

    O arquivo de defaults é obrigatório: sem ele não existe configuração
    efetiva válida para a run.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo não é suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz do arquivo não é um `dict`.

    Listas ou valores escalares no root são inválidos; o loader não tenta
    normalizar ou encapsular estruturas inválidas.
    """


class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando ocorre conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"engine": {"strict_structure": true}}
        - override: {"engine": "DEBUG"}

    Nenhum merge parcial é produzido em caso de conflito.
    """
