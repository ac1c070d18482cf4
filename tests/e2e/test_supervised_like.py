# tests/e2e/test_supervised_like.py
"""
Teste end-to-end: workflow de fine-tuning supervisionado com backends fake.

Exercita, em uma única run:
- adapters (ports lógicos) acessados pelos stages via Context
- loops aninhados (epochs → batches) com `<loop>_current`
- conditionals dependentes de config/state (checkpoint, evaluate)
- métricas por step e visão tabular (pandas)
- Run Manifest persistido via `kitchen_flow.run(..., manifest_path=...)`

Nenhum backend real é usado: o "training client" é um fake em memória.
"""

import json
from pathlib import Path

import pytest

try:
    import kitchen_flow as kf
    from kitchen_flow.core.workflow.stage import BaseStage
    from kitchen_flow.core.workflow.types import StageError
except Exception as e:  # noqa: BLE001
    kf = None
    BaseStage = object
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing kitchen_flow public API. Import error: {_IMPORT_ERR}")


class FakeTrainingClient:
    """Backend de treino em memória: loss decresce a cada optimizer step."""

    def __init__(self, fail_at_step=None):
        self.steps = 0
        self.saved = []
        self.fail_at_step = fail_at_step

    def forward_backward(self, batch):
        if self.fail_at_step is not None and self.steps == self.fail_at_step:
            raise ConnectionError("backend unavailable")
        return {"loss": 1.0 / (self.steps + 1), "batch": batch}

    def optim_step(self):
        self.steps += 1

    def save_weights(self, name):
        self.saved.append(name)
        return f"mem://{name}"


class FakeDatasetStore:
    def __init__(self, rows):
        self.rows = rows

    def load(self, split):
        return list(self.rows)


class LoadDataset(BaseStage):
    name = "load_dataset"

    def execute(self, ctx):
        store = self.get_adapter(ctx, "dataset_store")
        return self.put_state(ctx, "dataset", store.load(self.get_option(ctx, "split", "train")))


class InitSession(BaseStage):
    name = "init_session"

    def validate(self, ctx):
        if not ctx.has_adapter("training_client"):
            return StageError(reason="training_client adapter required")
        return None

    def execute(self, ctx):
        return self.put_state(ctx, "global_step", 0)


class GetBatch(BaseStage):
    name = "get_batch"

    def execute(self, ctx):
        batch_size = self.get_config(ctx, "batch_size", 1)
        index = self.get_state(ctx, "batches_current")
        rows = self.get_state(ctx, "dataset")
        return self.put_state(ctx, "batch", rows[index * batch_size:(index + 1) * batch_size])


class ForwardBackward(BaseStage):
    name = "forward_backward"

    def execute(self, ctx):
        client = self.get_adapter(ctx, "training_client")
        return self.put_state(ctx, "fb_result", client.forward_backward(self.get_state(ctx, "batch")))

    def rollback(self, ctx, fault):
        ctx.delete_state("batch")
        return ctx.put_state("fb_error", str(fault))


class OptimStep(BaseStage):
    name = "optim_step"

    def execute(self, ctx):
        self.get_adapter(ctx, "training_client").optim_step()
        step = self.get_state(ctx, "global_step", 0) + 1
        ctx = self.put_state(ctx, "global_step", step)
        return self.record_metric(ctx, "loss", self.get_state(ctx, "fb_result")["loss"], step=step)


class SaveCheckpoint(BaseStage):
    name = "save_checkpoint"

    def execute(self, ctx):
        epoch = self.get_state(ctx, "epochs_current")
        uri = self.get_adapter(ctx, "training_client").save_weights(f"epoch-{epoch}")
        return self.put_state(ctx, "checkpoints", self.get_state(ctx, "checkpoints", []) + [uri])


class Evaluate(BaseStage):
    name = "evaluate"

    def execute(self, ctx):
        return self.record_metric(ctx, "eval_loss", 0.5, step=self.get_state(ctx, "global_step"))


def _num_batches(ctx):
    rows = ctx.get_state("dataset", [])
    size = ctx.get_config("batch_size", 1)
    return range((len(rows) + size - 1) // size)


def _supervised_workflow():
    wf = kf.WorkflowBuilder("supervised")
    wf.stage("load_dataset", LoadDataset, split="train")
    wf.stage("init_session", InitSession)
    with wf.loop("epochs", over=lambda ctx: range(ctx.get_config("epochs", 1))):
        with wf.loop("batches", over=_num_batches):
            wf.stage("get_batch", GetBatch)
            wf.stage("forward_backward", ForwardBackward)
            wf.stage("optim_step", OptimStep)
        with wf.conditional(lambda ctx: ctx.get_config("checkpoint", False)):
            wf.stage("save_checkpoint", SaveCheckpoint)
        with wf.conditional(lambda ctx: ctx.get_state("epochs_current") == ctx.get_config("epochs", 1) - 1):
            wf.stage("evaluate", Evaluate)
    wf.stage("cleanup", kf.Noop)
    return wf.build()


def test_supervised_workflow_end_to_end(tmp_path: Path):
    _require_imports()

    client = FakeTrainingClient()
    adapters = {"training_client": client, "dataset_store": FakeDatasetStore(list(range(10)))}
    config = {"epochs": 2, "batch_size": 4, "checkpoint": True}
    manifest_path = tmp_path / "run" / "manifest.json"

    result = kf.run(_supervised_workflow(), config, adapters, manifest_path=manifest_path)

    assert result.ok
    ctx = result.context
    assert client.steps == 6
    assert ctx.get_state("global_step") == 6
    assert ctx.get_state("checkpoints") == ["mem://epoch-0", "mem://epoch-1"]
    assert [m.step for m in ctx.get_metrics("loss")] == [1, 2, 3, 4, 5, 6]
    assert len(ctx.get_metrics("eval_loss")) == 1

    df = ctx.metrics_frame()
    assert df[df["name"] == "loss"]["value"].is_monotonic_decreasing

    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    assert manifest["run"]["status"] == "succeeded"
    assert manifest["run"]["workflow"] == "supervised"
    assert manifest["run"]["run_id"] == ctx.run_id
    assert manifest["stages"]["forward_backward"]["runs"] == 6
    assert manifest["stages"]["evaluate"]["runs"] == 1
    assert manifest["inputs"]["outline"][2]["type"] == "loop"


def test_missing_adapter_fails_validation():
    _require_imports()

    result = kf.run(_supervised_workflow(), {"epochs": 1}, {"dataset_store": FakeDatasetStore([1])})

    assert result.status is kf.RunStatus.FAILED
    assert result.error.stage == "init_session"
    assert result.error.kind is kf.FailureKind.VALIDATION


def test_backend_fault_is_rolled_back_and_located():
    _require_imports()

    client = FakeTrainingClient(fail_at_step=4)
    adapters = {"training_client": client, "dataset_store": FakeDatasetStore(list(range(10)))}

    result = kf.run(_supervised_workflow(), {"epochs": 2, "batch_size": 4}, adapters)

    assert not result.ok
    assert result.error.kind is kf.FailureKind.ROLLBACK
    assert result.error.stage == "forward_backward"
    assert result.error.loop_path == (("epochs", 1, 1), ("batches", 1, 1))
    assert result.context.get_state("fb_error") == "backend unavailable"
    assert not result.context.has_state("batch")


def test_fault_without_rollback_still_writes_manifest(tmp_path: Path):
    _require_imports()

    class BrokenCleanup(BaseStage):
        name = "cleanup"

        def execute(self, ctx):
            raise OSError("disk full")

    wf = kf.WorkflowBuilder("broken")
    wf.stage("cleanup", BrokenCleanup)
    manifest_path = tmp_path / "manifest.json"

    with pytest.raises(OSError):
        kf.run(wf.build(), {}, manifest_path=manifest_path)

    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    assert manifest["run"]["status"] == "fault"
    assert manifest["stages"]["cleanup"]["status"] == "fault"
