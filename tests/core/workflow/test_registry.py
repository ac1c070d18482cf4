# tests/core/workflow/test_registry.py
"""
Testes do StageRegistry (resolução por nome para definições declarativas).

Invariantes:
    - Nomes duplicados são rejeitados no registro
    - Nomes desconhecidos são rejeitados na resolução
    - A ordem de registro é preservada na listagem
"""

import pytest

try:
    from kitchen_flow.core.workflow.registry import (
        DuplicateRegistrationError,
        StageRegistry,
        UnknownRegistrationError,
    )
    from kitchen_flow.stages import Noop, SetState
except Exception as e:  # noqa: BLE001
    StageRegistry = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing registry module. Import error: {_IMPORT_ERR}")


def test_register_and_resolve():
    _require_imports()

    noop = Noop()

    def epochs(ctx):
        return range(2)

    def should_eval(ctx):
        return True

    registry = (
        StageRegistry()
        .add_stage("noop", noop)
        .add_stage("set_state", SetState)
        .add_iterator("epochs", epochs)
        .add_predicate("should_eval", should_eval)
    )

    assert registry.stage("noop") is noop
    assert isinstance(registry.stage("set_state"), SetState)
    assert registry.iterator("epochs") is epochs
    assert registry.predicate("should_eval") is should_eval
    assert registry.stage_names() == ["noop", "set_state"]


def test_duplicate_name_is_rejected():
    _require_imports()

    registry = StageRegistry().add_stage("noop", Noop)

    with pytest.raises(DuplicateRegistrationError):
        registry.add_stage("noop", Noop)


def test_namespaces_are_independent():
    _require_imports()

    registry = StageRegistry().add_stage("x", Noop).add_iterator("x", lambda ctx: []).add_predicate("x", lambda ctx: True)

    assert isinstance(registry.stage("x"), Noop)


def test_unknown_name_is_rejected():
    _require_imports()

    with pytest.raises(UnknownRegistrationError):
        StageRegistry().predicate("missing")


@pytest.mark.parametrize("name", ["", "   ", None, 3])
def test_invalid_names_are_rejected(name):
    _require_imports()

    with pytest.raises(ValueError):
        StageRegistry().add_stage(name, Noop)
