"""Sequential execution of the model graph."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.exceptions import DataQualityError, LoanMartError, PipelineError
from loan_mart.logging import model_context
from loan_mart.models.base import Record
from loan_mart.models.enums import CheckStatus, ModelStatus
from loan_mart.pipeline.graph import ModelGraph, ModelNode
from loan_mart.quality.checks import QualityResult

logger = logging.getLogger(__name__)


@dataclass
class ModelResult:
    """Outcome of building one model."""

    name: str
    status: ModelStatus
    rows: int = 0
    elapsed: float = 0.0
    error: str | None = None
    checks: list[QualityResult] = field(default_factory=list)


@dataclass
class RunResult:
    """Outcome of a pipeline run, in execution order."""

    models: list[ModelResult] = field(default_factory=list)
    elapsed: float = 0.0

    def __getitem__(self, name: str) -> ModelResult:
        for result in self.models:
            if result.name == name:
                return result
        raise KeyError(name)

    @property
    def succeeded(self) -> bool:
        return all(m.status == ModelStatus.SUCCESS for m in self.models)

    @property
    def failed(self) -> list[ModelResult]:
        return [m for m in self.models if m.status == ModelStatus.ERROR]

    @property
    def warnings(self) -> list[QualityResult]:
        return [c for m in self.models for c in m.checks if c.status == CheckStatus.WARN]

    def raise_for_status(self) -> None:
        """Raise :class:`PipelineError` if any model failed."""
        if self.failed:
            names = ", ".join(m.name for m in self.failed)
            raise PipelineError(f"Pipeline failed: {names}")


class PipelineRunner:
    """Build models in dependency order on a single engine.

    Each model reads only the materialized output of its dependencies.
    When a model fails, everything downstream of it is skipped. With
    ``fail_fast`` the original exception is re-raised once the remaining
    models are marked skipped; ``self.result`` still holds the partial run.

    Parameters
    ----------
    engine : QueryEngine
        Engine holding the loaded sources.
    graph : ModelGraph
        Models to build.
    run_quality_checks : bool
        Whether to run each model's checks after materializing it.
    fail_fast : bool
        Re-raise the first model failure instead of continuing with
        independent models.
    """

    def __init__(
        self,
        engine: QueryEngine,
        graph: ModelGraph,
        run_quality_checks: bool = True,
        fail_fast: bool = True,
    ) -> None:
        self.engine = engine
        self.graph = graph
        self.run_quality_checks = run_quality_checks
        self.fail_fast = fail_fast
        self.result = RunResult()
        self._relations: dict[str, Relation] = {}

    def relation(self, name: str) -> Relation:
        """Relation for a model built in this run, else a table on the engine."""
        if name in self._relations:
            return self._relations[name]
        return self.engine.table(name)

    def run(self, select: Iterable[str] | None = None) -> RunResult:
        """Build the selected models (all by default)."""
        names = self.graph.select(select)
        self.result = RunResult()
        blocked: set[str] = set()
        start_time = time.perf_counter()

        logger.info("Running %d model(s) on %s engine", len(names), self.engine.name)

        for position, name in enumerate(names):
            node = self.graph.nodes[name]
            if name in blocked:
                logger.warning("Skipping %s: an upstream model failed", name)
                self.result.models.append(ModelResult(name=name, status=ModelStatus.SKIPPED))
                continue

            try:
                with model_context(name):
                    model_result = self._build(node)
            except LoanMartError as exc:
                logger.error("Model %s failed: %s", name, exc)
                self.result.models.append(
                    ModelResult(
                        name=name,
                        status=ModelStatus.ERROR,
                        error=str(exc),
                        checks=list(getattr(exc, "results", [])),
                    )
                )
                blocked |= self.graph.downstream(name)
                if self.fail_fast:
                    for remaining in names[position + 1 :]:
                        self.result.models.append(
                            ModelResult(name=remaining, status=ModelStatus.SKIPPED)
                        )
                    self.result.elapsed = time.perf_counter() - start_time
                    raise
                continue

            self.result.models.append(model_result)

        self.result.elapsed = time.perf_counter() - start_time
        logger.info(
            "Run finished in %.2fs: %d succeeded, %d failed, %d skipped",
            self.result.elapsed,
            sum(m.status == ModelStatus.SUCCESS for m in self.result.models),
            sum(m.status == ModelStatus.ERROR for m in self.result.models),
            sum(m.status == ModelStatus.SKIPPED for m in self.result.models),
        )
        return self.result

    def _build(self, node: ModelNode) -> ModelResult:
        start_time = time.perf_counter()
        upstream = {dep: self.relation(dep) for dep in node.depends_on}

        relation = self.engine.materialize(node.run(self.engine, upstream), node.name)
        self._relations[node.name] = relation
        rows = self.engine.count(relation)

        checks = self._check(node, relation) if self.run_quality_checks else []
        elapsed = time.perf_counter() - start_time
        logger.info("Built %d rows in %.3fs", rows, elapsed)

        return ModelResult(
            name=node.name,
            status=ModelStatus.SUCCESS,
            rows=rows,
            elapsed=elapsed,
            checks=checks,
        )

    def _check(self, node: ModelNode, relation: Relation) -> list[QualityResult]:
        results = [check.run(self.engine, node.name, relation, self.relation) for check in node.checks]

        for result in results:
            if result.status == CheckStatus.WARN:
                logger.warning("%s: %s", node.name, result.message)
            elif result.status == CheckStatus.FAIL:
                logger.error("%s: %s", node.name, result.message)
            else:
                logger.debug("%s: %s", node.name, result.message)

        failed = [r for r in results if r.status == CheckStatus.FAIL]
        if failed:
            names = ", ".join(r.check_name for r in failed)
            raise DataQualityError(f"{node.name} failed {len(failed)} check(s): {names}", results=results)
        return results

    def fetch(self, name: str) -> list[Record] | list[dict[str, Any]]:
        """Rows of a model, as its record type when one is declared."""
        rows = self.engine.collect(self.relation(name))
        node = self.graph.nodes.get(name)
        if node is None or node.record_type is None:
            return rows
        return [node.record_type.from_row(row) for row in rows]
