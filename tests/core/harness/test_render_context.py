# tests/core/harness/test_render_context.py
"""
Testes do log estruturado de eventos do RenderContext.

Invariantes:
    - Eventos incluem sempre `run_id`, `entry`, `level`, `message` e timestamp UTC
    - Campos extras são preservados
    - Warnings são agrupados por entrada
"""

from datetime import datetime

import pytest

try:
    from readyset_chart.core.harness.context import RenderContext
except Exception as e:  # noqa: BLE001
    RenderContext = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing RenderContext. Implement:\n"
            "- src/readyset_chart/core/harness/context.py (RenderContext)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_log_event_shape(render_ctx):
    _require_imports()
    render_ctx.log(entry="defaults", level="INFO", message="render started", digest="abc")
    event = render_ctx.events[-1]
    assert event["run_id"] == "run-test-001"
    assert event["entry"] == "defaults"
    assert event["level"] == "INFO"
    assert event["message"] == "render started"
    assert event["digest"] == "abc"
    assert datetime.fromisoformat(event["timestamp"]).tzinfo is not None


def test_events_and_warnings_grouped_by_entry(render_ctx):
    _require_imports()
    render_ctx.log(entry="a", level="INFO", message="one")
    render_ctx.log(entry="b", level="INFO", message="two")
    render_ctx.add_warning(entry="a", message="w1")
    render_ctx.add_warning(entry="a", message="w2")
    assert [e["message"] for e in render_ctx.events_for("a")] == ["one"]
    assert render_ctx.warnings == {"a": ["w1", "w2"]}


def test_default_run_id_is_unique():
    _require_imports()
    assert RenderContext().run_id != RenderContext().run_id
