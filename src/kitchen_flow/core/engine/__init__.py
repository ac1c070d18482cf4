# src/kitchen_flow/core/engine/__init__.py
"""
Engine do Kitchen Flow.

Este pacote contém a implementação responsável por **compilar** e
**executar** workflows:

    - compiler → instruções planas → árvore de IR (validação estrutural)
    - runner   → interpretação da IR contra o Context, com instrumentação
    - parallel → execução de blocos parallel em threads (opt-in)
    - options  → opções de execução lidas da seção `engine:` da config

Princípios fundamentais:
    - Compilação e execução são responsabilidades separadas
    - A ordem de execução é determinística (profundidade, esquerda → direita)
    - A primeira falha interrompe a run

Limites explícitos:
    - Não define stages de domínio
    - Não persiste resultados automaticamente
"""

from .compiler import CompiledWorkflow, compile_instructions, compile_workflow
from .options import EngineConfigurationError, ParallelMode, RunnerOptions
from .runner import COMPILER_WARNING_KEY, Runner

__all__ = [
    "CompiledWorkflow",
    "compile_instructions",
    "compile_workflow",
    "EngineConfigurationError",
    "ParallelMode",
    "RunnerOptions",
    "Runner",
    "COMPILER_WARNING_KEY",
]
