"""Tests for the run_pipeline command-line script."""

import importlib.util
from pathlib import Path
from types import ModuleType
from unittest.mock import patch

import pytest

from loan_mart.config import LoanMartConfig
from loan_mart.sinks import ConsoleSink

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_pipeline.py"


@pytest.fixture(scope="module")
def cli() -> ModuleType:
    spec = importlib.util.spec_from_file_location("run_pipeline", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestParser:
    def test_defaults(self, cli: ModuleType) -> None:
        args = cli.build_parser().parse_args([])

        assert args.sink == []
        assert args.truncate is False
        assert args.console_layout == "table"

    def test_repeatable_sinks_and_truncate(self, cli: ModuleType) -> None:
        args = cli.build_parser().parse_args(["--sink", "console", "--sink", "postgres", "--truncate"])

        assert args.sink == ["console", "postgres"]
        assert args.truncate is True


class TestBuildSinks:
    def test_postgres_sink_receives_truncate(self, cli: ModuleType) -> None:
        config = LoanMartConfig()

        with patch.object(cli, "PostgresSink") as sink_cls:
            sinks = cli.build_sinks(["postgres"], config, "postgresql://localhost/warehouse", truncate=True)

        sink_cls.assert_called_once_with(
            "postgresql://localhost/warehouse",
            schema=f"{config.postgres.schema}_export",
            truncate=True,
        )
        assert sinks == [sink_cls.return_value]

    def test_console_layout(self, cli: ModuleType) -> None:
        (sink,) = cli.build_sinks(["console"], LoanMartConfig(), "", console_layout="json")

        assert isinstance(sink, ConsoleSink)
        assert sink.layout == "json"
