"""Static model graph with dependency resolution and node selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Callable, Iterable

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.exceptions import PipelineError
from loan_mart.models.base import Record
from loan_mart.quality.checks import QualityCheck

# Source tables are loaded before the run, not built by a model
SOURCES = ("loan_types", "raw_loans", "raw_loan_payments")

BuildFn = Callable[..., Relation]


@dataclass
class ModelNode:
    """A single model in the graph.

    Parameters
    ----------
    name : str
        Name the model is materialized under.
    depends_on : tuple[str, ...]
        Upstream models or sources, passed positionally to ``build``
        after the engine.
    build : Callable
        Pure function ``build(engine, *upstream_relations) -> Relation``.
    description : str
        Human-readable summary for logs and listings.
    checks : list[QualityCheck]
        Quality checks run against the materialized model.
    record_type : type[Record] | None
        Dataclass the model rows convert to.
    """

    name: str
    depends_on: tuple[str, ...]
    build: BuildFn
    description: str = ""
    checks: list[QualityCheck] = field(default_factory=list)
    record_type: type[Record] | None = None

    def run(self, engine: QueryEngine, upstream: dict[str, Relation]) -> Relation:
        return self.build(engine, *(upstream[dep] for dep in self.depends_on))


class ModelGraph:
    """Acyclic graph of models over a fixed set of source tables."""

    def __init__(self, nodes: Iterable[ModelNode], sources: Iterable[str] = SOURCES) -> None:
        self.sources = tuple(sources)
        self.nodes: dict[str, ModelNode] = {}
        for node in nodes:
            if node.name in self.nodes or node.name in self.sources:
                raise PipelineError(f"Duplicate model name: {node.name}")
            self.nodes[node.name] = node

        for node in self.nodes.values():
            for dep in node.depends_on:
                if dep not in self.nodes and dep not in self.sources:
                    raise PipelineError(f"Model {node.name} depends on unknown model {dep}")

        self._order = self._resolve_order()

    def __contains__(self, name: str) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def order(self) -> list[str]:
        """Model names in dependency order."""
        return list(self._order)

    def _resolve_order(self) -> list[str]:
        sorter = TopologicalSorter(
            {name: [d for d in node.depends_on if d in self.nodes] for name, node in self.nodes.items()}
        )
        try:
            return list(sorter.static_order())
        except CycleError as exc:
            cycle = " -> ".join(exc.args[1])
            raise PipelineError(f"Model graph has a cycle: {cycle}") from exc

    def upstream(self, name: str) -> set[str]:
        """All models ``name`` transitively depends on (sources excluded)."""
        found: set[str] = set()
        pending = [name]
        while pending:
            for dep in self.nodes[pending.pop()].depends_on:
                if dep in self.nodes and dep not in found:
                    found.add(dep)
                    pending.append(dep)
        return found

    def downstream(self, name: str) -> set[str]:
        """All models that transitively depend on ``name``."""
        found: set[str] = set()
        pending = [name]
        while pending:
            current = pending.pop()
            for other in self.nodes.values():
                if current in other.depends_on and other.name not in found:
                    found.add(other.name)
                    pending.append(other.name)
        return found

    def select(self, selectors: Iterable[str] | None = None) -> list[str]:
        """Resolve selectors to model names in dependency order.

        ``name`` selects a model, ``+name`` adds its ancestors and ``name+``
        its descendants. No selectors means every model.
        """
        selectors = list(selectors or [])
        if not selectors:
            return self.order

        chosen: set[str] = set()
        for selector in (s.strip() for s in selectors):
            name = selector.strip("+")
            if name not in self.nodes:
                raise PipelineError(f"Selector {selector!r} matches no model")
            chosen.add(name)
            if selector.startswith("+"):
                chosen |= self.upstream(name)
            if selector.endswith("+"):
                chosen |= self.downstream(name)

        return [name for name in self._order if name in chosen]
