"""End-to-end run: load seeds, build models, export results."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol

from loan_mart.config import LoanMartConfig
from loan_mart.engine import QueryEngine, create_engine
from loan_mart.models.enums import ModelStatus
from loan_mart.pipeline.registry import default_graph
from loan_mart.pipeline.runner import PipelineRunner, RunResult
from loan_mart.sources import load_seeds, load_sources

logger = logging.getLogger(__name__)


class Sink(Protocol):
    def write_batch(self, table: str, records: list[Any]) -> None: ...

    def close(self) -> None: ...


def run_pipeline(
    config: LoanMartConfig,
    select: Iterable[str] | None = None,
    sinks: Iterable[Sink] = (),
    engine: QueryEngine | None = None,
) -> RunResult:
    """Load the seed files, build the selected models and export them.

    Parameters
    ----------
    config : LoanMartConfig
        Engine, seeds directory and quality-check settings.
    select : Iterable[str] | None
        Model selectors (``name``, ``+name``, ``name+``); all models when
        omitted.
    sinks : Iterable[Sink]
        Destinations receiving every successfully built model. Sinks are
        closed once the export finishes.
    engine : QueryEngine | None
        Engine to use instead of the one ``config`` describes. It is left
        open for the caller.

    Returns
    -------
    RunResult
        Per-model outcome of the run.
    """
    sinks = list(sinks)
    owns_engine = engine is None
    if engine is None:
        engine = create_engine(config)

    try:
        load_sources(engine, load_seeds(config.seeds_dir))
        runner = PipelineRunner(engine, default_graph(), run_quality_checks=config.run_quality_checks)
        result = runner.run(select)

        for model in result.models:
            if model.status != ModelStatus.SUCCESS:
                continue
            records = runner.fetch(model.name)
            for sink in sinks:
                sink.write_batch(model.name, records)
            logger.info("Exported %s: %d records to %d sink(s)", model.name, len(records), len(sinks))
    finally:
        for sink in sinks:
            sink.close()
        if owns_engine:
            engine.close()

    return result
