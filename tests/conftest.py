# tests/conftest.py
"""
Fixtures compartilhados para testes do Kitchen Flow.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração mínima e determinística de uma run
- contexto de execução controlado (Context)
- stages dummy para testes estruturais do compilador e do Runner

O objetivo destas fixtures é permitir testes do core
(config, workflow, engine e traceability) sem depender de:
- filesystem (exceto `tmp_path`, quando o teste pede)
- backends reais (adapters são sempre fakes em memória)
- stages de domínio

Decisões arquiteturais:
    - Stages dummy utilizam duck typing em vez de herança
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture executa workflow real
    - Nenhuma fixture realiza I/O
"""

from datetime import datetime, timezone

import pytest


@pytest.fixture
def dummy_config() -> dict:
    """
    Configuração mínima e válida para testes.

    Inclui a seção `engine:` com os defaults explícitos e duas chaves livres
    consumidas por iteradores de teste (`epochs`, `batches`).

    Returns:
        dict: Configuração já resolvida (sem loader nem merge).
    """
    return {
        "engine": {
            "strict_structure": True,
            "log_level": "INFO",
            "parallel": {"mode": "sequential"},
        },
        "epochs": 2,
        "batches": 3,
    }


@pytest.fixture
def dummy_ctx(dummy_config):
    """
    Context determinístico para testes.

    `run_id` e `started_at` são fixos para garantir reprodutibilidade
    de asserts sobre eventos e Manifest.
    """
    from kitchen_flow.core.workflow.context import Context

    return Context(
        config=dummy_config,
        adapters={},
        metadata={
            "run_id": "run-test-001",
            "started_at": datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
            "source": "pytest",
        },
    )


@pytest.fixture
def CountingStage():
    """
    Fixture factory que fornece um stage duck-typed e observável.

    A classe retornada:
    - incrementa o contador `counter_key` no state a cada execução
    - registra o próprio nome em `trace` (lista) no state, na ordem de execução
    - pode falhar de forma controlada:
        * `fail_with=<reason>` → retorna `StageError(reason)`
        * `raise_exc=<exception>` → levanta a exceção (fault)

    Returns:
        type: Classe `_CountingStage` instanciável pelos testes.
    """
    from kitchen_flow.core.workflow.types import StageError

    class _CountingStage:
        def __init__(self, name="counting", *, counter_key="count", fail_with=None, raise_exc=None):
            self.name = name
            self.counter_key = counter_key
            self.fail_with = fail_with
            self.raise_exc = raise_exc
            self.calls = 0

        def execute(self, ctx):
            self.calls += 1
            if self.raise_exc is not None:
                raise self.raise_exc
            if self.fail_with is not None:
                return StageError(reason=self.fail_with)
            ctx.put_state(self.counter_key, ctx.get_state(self.counter_key, 0) + 1)
            ctx.put_state("trace", ctx.get_state("trace", []) + [ctx.current_stage])
            return ctx

    return _CountingStage
