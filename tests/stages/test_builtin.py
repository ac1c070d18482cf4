# tests/stages/test_builtin.py
"""
Testes dos stages utilitários (Noop, SetState).
"""

import pytest

try:
    from kitchen_flow.core.engine.runner import Runner
    from kitchen_flow.core.workflow.builder import WorkflowBuilder
    from kitchen_flow.core.workflow.stage import BaseStage, RollbackStage, Stage, ValidatingStage
    from kitchen_flow.core.workflow.types import FailureKind
    from kitchen_flow.stages import Noop, SetState
except Exception as e:  # noqa: BLE001
    Noop = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing builtin stages. Import error: {_IMPORT_ERR}")


def test_capabilities_are_detected_by_duck_typing():
    _require_imports()

    assert isinstance(Noop(), Stage)
    assert isinstance(Noop(), BaseStage)
    assert not isinstance(Noop(), ValidatingStage)
    assert isinstance(SetState(), ValidatingStage)
    assert not isinstance(SetState(), RollbackStage)


def test_noop_returns_context_unchanged(dummy_ctx):
    _require_imports()

    assert Noop().execute(dummy_ctx) is dummy_ctx


def test_set_state_writes_values(dummy_ctx):
    _require_imports()

    dummy_ctx.put_state("global_step", 10)
    wf = WorkflowBuilder("seed")
    wf.stage("seed", SetState, values={"global_step": 0, "phase": "warmup"})

    result = Runner().run(wf.build(), dummy_ctx)

    assert result.ok
    assert result.context.get_state("global_step") == 0
    assert result.context.get_state("phase") == "warmup"


def test_set_state_without_values_is_noop(dummy_ctx):
    _require_imports()

    wf = WorkflowBuilder("seed")
    wf.stage("seed", SetState)

    result = Runner().run(wf.build(), dummy_ctx)

    assert result.ok
    assert result.context.state == {}


def test_set_state_rejects_non_mapping_values(dummy_ctx):
    _require_imports()

    wf = WorkflowBuilder("seed")
    wf.stage("seed", SetState, values=["global_step", 0])

    result = Runner().run(wf.build(), dummy_ctx)

    assert result.error.kind is FailureKind.VALIDATION
    assert result.error.reason == "option 'values' must be a mapping"
