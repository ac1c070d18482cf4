# tests/core/workflow/test_metrics_frame.py
"""
Testes da visão tabular (pandas) do log de métricas.
"""

import pytest

try:
    import pandas as pd

    from kitchen_flow.core.workflow.metrics import METRIC_COLUMNS, metrics_to_frame
except Exception as e:  # noqa: BLE001
    metrics_to_frame = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing metrics module (or pandas). Import error: {_IMPORT_ERR}")


def test_empty_log_gives_empty_frame_with_columns():
    _require_imports()

    df = metrics_to_frame([])

    assert isinstance(df, pd.DataFrame)
    assert df.empty
    assert list(df.columns) == METRIC_COLUMNS


def test_frame_preserves_recording_order(dummy_ctx):
    _require_imports()

    for step, loss in enumerate([3.0, 2.0, 1.0]):
        dummy_ctx.record_metric("loss", loss, step=step)
    dummy_ctx.record_metric("accuracy", 0.9)

    df = dummy_ctx.metrics_frame()

    assert list(df.columns) == METRIC_COLUMNS
    assert df["name"].tolist() == ["loss", "loss", "loss", "accuracy"]
    assert df["value"].tolist() == [3.0, 2.0, 1.0, 0.9]
    assert df[df["name"] == "loss"]["value"].min() == 1.0


def test_metric_to_dict_is_serializable(dummy_ctx):
    _require_imports()

    dummy_ctx.record_metric("loss", 1, step=3)
    (metric,) = dummy_ctx.get_metrics()

    data = metric.to_dict()
    assert data["value"] == 1.0
    assert isinstance(data["value"], float)
    assert data["step"] == 3
    assert isinstance(data["timestamp"], str)
