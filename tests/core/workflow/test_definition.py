# tests/core/workflow/test_definition.py
"""
Testes de definições declarativas de workflow (dict / YAML / JSON).

Os testes asseguram que:
- a definição é achatada na mesma sequência de instruções do builder
- stages, iteradores e predicados são resolvidos via StageRegistry
- referências `{config: k}` / `{state: k}` viram lookups no Context
- formatos inválidos são rejeitados com `WorkflowStructureError`
"""

from pathlib import Path

import pytest

try:
    from kitchen_flow.core.engine.runner import Runner
    from kitchen_flow.core.exceptions import WorkflowStructureError
    from kitchen_flow.core.workflow.definition import definition_from_data, load_definition
    from kitchen_flow.core.workflow.instructions import ConditionalStart, LoopEnd, LoopStart, StageInstruction
    from kitchen_flow.core.workflow.registry import StageRegistry, UnknownRegistrationError
    from kitchen_flow.stages import Noop, SetState
except Exception as e:  # noqa: BLE001
    definition_from_data = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing definition module. Implement:\n"
            "- src/kitchen_flow/core/workflow/definition.py (definition_from_data, load_definition)\n"
            f"Import error: {_IMPORT_ERR}"
        )


@pytest.fixture
def registry(CountingStage):
    return (
        StageRegistry()
        .add_stage("noop", Noop)
        .add_stage("set_state", SetState)
        .add_stage("count", CountingStage())
        .add_iterator("epochs_range", lambda ctx: range(ctx.get_config("epochs", 1)))
        .add_predicate("always", lambda ctx: True)
    )


def test_flattens_nested_steps(registry):
    _require_imports()

    wf = definition_from_data(
        {
            "name": "demo",
            "steps": [
                {"stage": "seed", "use": "set_state", "opts": {"values": {"a": 1}}},
                {"loop": "epochs", "over": "epochs_range", "body": [{"stage": "noop"}]},
            ],
        },
        registry,
    )

    assert wf.name == "demo"
    kinds = [type(i) for i in wf.instructions]
    assert kinds == [StageInstruction, LoopStart, StageInstruction, LoopEnd]
    assert wf.instructions[0].name == "seed"
    assert isinstance(wf.instructions[0].impl, SetState)
    assert wf.instructions[0].opts == {"values": {"a": 1}}
    assert wf.instructions[2].name == "noop"


def test_declarative_definition_runs(registry, dummy_ctx):
    _require_imports()

    wf = definition_from_data(
        {
            "name": "demo",
            "steps": [
                {"stage": "seed", "use": "set_state", "opts": {"values": {"flag": True}}},
                {
                    "loop": "epochs",
                    "over": "epochs_range",
                    "body": [
                        {"conditional": {"state": "flag"}, "body": [{"stage": "count"}]},
                        {"conditional": False, "body": [{"stage": "never", "use": "count"}]},
                    ],
                },
                {"loop": "fixed", "over": ["x", "y", "z"], "body": [{"stage": "count"}]},
                {"parallel": {"max_concurrency": 2}, "body": [{"stage": "noop"}]},
            ],
        },
        registry,
    )

    result = Runner().run(wf, dummy_ctx)

    assert result.ok
    assert result.context.get_state("count") == 2 + 3
    assert result.context.get_state("fixed_current") == "z"


def test_config_reference_iterator(registry, dummy_ctx):
    _require_imports()

    dummy = definition_from_data(
        {"steps": [{"loop": "items", "over": {"config": "items"}, "body": [{"stage": "count"}]}]},
        registry,
    )

    result = Runner().run(dummy, dummy_ctx)

    assert result.ok
    assert not result.context.has_state("count")


def test_predicate_name_resolution(registry):
    _require_imports()

    wf = definition_from_data({"steps": [{"conditional": "always", "body": []}]}, registry)

    assert isinstance(wf.instructions[0], ConditionalStart)
    assert wf.instructions[0].predicate(None) is True


def test_unknown_entries_pass_through_and_are_dropped_by_compiler(registry, dummy_ctx):
    _require_imports()

    wf = definition_from_data({"steps": [{"checkpoint_every": 3}, {"stage": "count"}]}, registry)

    assert wf.instructions[0] == {"checkpoint_every": 3}
    assert Runner().run(wf, dummy_ctx).context.get_state("count") == 1


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"steps": {"stage": "noop"}},
        {"steps": [{"loop": "l", "body": []}]},
        {"steps": [{"loop": "l", "over": 3, "body": []}]},
        {"steps": [{"loop": "l", "over": {"env": "X"}, "body": []}]},
        {"steps": [{"conditional": 1.5, "body": []}]},
        {"steps": [{"conditional": True, "body": {"stage": "noop"}}]},
    ],
)
def test_invalid_definitions_are_rejected(registry, data):
    _require_imports()

    with pytest.raises(WorkflowStructureError):
        definition_from_data(data, registry)


def test_unregistered_stage_is_rejected(registry):
    _require_imports()

    with pytest.raises(UnknownRegistrationError):
        definition_from_data({"steps": [{"stage": "missing"}]}, registry)


def test_load_definition_from_yaml(tmp_path: Path, registry, dummy_ctx):
    _require_imports()

    path = tmp_path / "workflow.yaml"
    path.write_text(
        """\
name: yaml_demo
steps:
  - stage: seed
    use: set_state
    opts:
      values:
        global_step: 0
  - loop: epochs
    over: epochs_range
    body:
      - stage: count
""",
        encoding="utf-8",
    )

    wf = load_definition(path, registry)
    result = Runner().run(wf, dummy_ctx)

    assert wf.name == "yaml_demo"
    assert result.ok
    assert result.context.get_state("global_step") == 0
    assert result.context.get_state("count") == 2
