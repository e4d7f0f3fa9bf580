"""Unit tests for the click CLI."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from degradscan.cli.cli import main
from degradscan.models import Provenance, ReferenceMetadata, ResolutionOutcome


def _pipeline(report) -> MagicMock:
    pipeline = MagicMock()
    pipeline.resolve_detailed = AsyncMock(
        return_value=ResolutionOutcome(
            report=report,
            provenance=Provenance.DATABASE,
            cache_hit=False,
            latency_ms=12.0,
        )
    )
    return pipeline


def test_report_prints_products_and_writes_json(tmp_path, sample_report):
    out = tmp_path / "report.json"
    pipeline = _pipeline(sample_report)
    with patch("degradscan.cli.cli.build_default_pipeline", return_value=pipeline):
        result = CliRunner().invoke(main, ["report", "-s", "X", "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "source: database" in result.output
    assert "Product A" in result.output
    payload = json.loads(out.read_text())
    assert payload["source"] == "database"
    assert [p["substance"] for p in payload["products"]] == ["Product A", "Product B"]

    context = pipeline.resolve_detailed.await_args.args[1]
    assert context.ip == "cli"


def test_report_with_reference_resolution(sample_report):
    items = [ReferenceMetadata.identity(sample_report.references[0])]
    with (
        patch(
            "degradscan.cli.cli.build_default_pipeline",
            return_value=_pipeline(sample_report),
        ),
        patch(
            "degradscan.cli.cli.resolve_references", new=AsyncMock(return_value=items)
        ),
    ):
        result = CliRunner().invoke(main, ["report", "-s", "X", "--resolve-refs"])

    assert result.exit_code == 0, result.output
    assert f"[{items[0].id}]" in result.output


def test_refs_outputs_json():
    items = [ReferenceMetadata.identity("a"), ReferenceMetadata.identity("b")]
    with patch(
        "degradscan.cli.cli.resolve_references", new=AsyncMock(return_value=items)
    ):
        result = CliRunner().invoke(main, ["refs", "a", "b"])

    assert result.exit_code == 0
    assert [item["id"] for item in json.loads(result.output)] == ["a", "b"]


def test_health_exit_code_reflects_probe():
    probe = {"has_key": False, "ok": False, "status": None, "error": "offline"}
    with patch("degradscan.cli.cli.check_llm_health", new=AsyncMock(return_value=probe)):
        result = CliRunner().invoke(main, ["health"])

    assert result.exit_code == 1
    assert '"error": "offline"' in result.output
