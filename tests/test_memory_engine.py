"""Tests for the in-memory query engine."""

from decimal import Decimal

import pytest

from loan_mart.engine import ColumnSpec, MemoryEngine, SortKey, col, count, count_distinct, sum_
from loan_mart.exceptions import JoinCardinalityError, PipelineError, RelationNotFoundError
from loan_mart.models.enums import ColumnType


def _load(engine: MemoryEngine, name: str, rows: list[dict]) -> object:
    columns = [ColumnSpec(c, ColumnType.TEXT) for c in rows[0]]
    return engine.load_table(name, columns, rows)


class TestTables:
    def test_load_and_reference(self, engine: MemoryEngine) -> None:
        _load(engine, "people", [{"id": "1", "name": "Ana"}])

        assert engine.has_table("people")
        assert engine.table("people").columns == ("id", "name")
        assert engine.collect(engine.table("people")) == [{"id": "1", "name": "Ana"}]

    def test_load_keeps_declared_columns_only(self, engine: MemoryEngine) -> None:
        relation = engine.load_table(
            "people",
            [ColumnSpec("id", ColumnType.TEXT)],
            [{"id": "1", "extra": "x"}, {}],
        )

        assert engine.collect(relation) == [{"id": "1"}, {"id": None}]

    def test_unknown_table(self, engine: MemoryEngine) -> None:
        assert not engine.has_table("missing")
        with pytest.raises(RelationNotFoundError):
            engine.table("missing")

    def test_materialize_replaces(self, engine: MemoryEngine) -> None:
        first = _load(engine, "t", [{"a": "1"}])
        engine.materialize(engine.project(first, {"b": col("a")}), "t")

        assert engine.table("t").columns == ("b",)

    def test_context_manager(self) -> None:
        with MemoryEngine() as engine:
            assert engine.name == "memory"


class TestProjectFilter:
    def test_project_one_row_per_input(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"a": "1"}, {"a": "2"}, {"a": "2"}])

        projected = engine.project(rel, {"copy": col("a")})

        assert engine.count(projected) == 3
        assert projected.columns == ("copy",)

    def test_project_unknown_column(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"a": "1"}])

        with pytest.raises(PipelineError, match="unknown column"):
            engine.project(rel, {"b": col("missing")})

    def test_filter_drops_null_predicates(self, engine: MemoryEngine) -> None:
        rel = engine.load_table(
            "t",
            [ColumnSpec("n", ColumnType.NUMERIC)],
            [{"n": Decimal("1")}, {"n": None}, {"n": Decimal("5")}],
        )

        kept = engine.filter(rel, col("n") > 2)

        assert engine.collect(kept) == [{"n": Decimal("5")}]

    def test_values_keep_python_types(self, engine: MemoryEngine) -> None:
        rel = engine.load_table(
            "t",
            [ColumnSpec("rate", ColumnType.NUMERIC), ColumnSpec("term", ColumnType.INTEGER)],
            [{"rate": Decimal("0.10"), "term": 360}, {"rate": None, "term": None}],
        )

        rows = engine.collect(engine.project(rel, {"term": col("term"), "total": col("rate") * col("term")}))

        assert rows == [{"term": 360, "total": Decimal("36.00")}, {"term": None, "total": None}]
        assert type(rows[0]["term"]) is int
        assert isinstance(rows[0]["total"], Decimal)


class TestGroupAggregate:
    def test_output_is_keys_then_aggregates(self, engine: MemoryEngine) -> None:
        rel = engine.load_table(
            "t",
            [ColumnSpec("k", ColumnType.TEXT), ColumnSpec("label", ColumnType.TEXT), ColumnSpec("v", ColumnType.NUMERIC)],
            [
                {"k": "x", "label": "first", "v": Decimal("1")},
                {"k": "y", "label": "other", "v": Decimal("2")},
                {"k": "x", "label": "second", "v": Decimal("3")},
            ],
        )

        grouped = engine.group_aggregate(rel, keys={"k": col("k")}, aggregates={"total": sum_(col("v")), "n": count()})

        assert grouped.columns == ("k", "total", "n")
        assert engine.collect(grouped) == [
            {"k": "x", "total": Decimal("4"), "n": 2},
            {"k": "y", "total": Decimal("2"), "n": 1},
        ]

    def test_null_keys_form_one_group(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"k": None, "id": "1"}, {"k": None, "id": "2"}, {"k": "a", "id": "3"}])

        grouped = engine.group_aggregate(rel, keys={"k": col("k")}, aggregates={"n": count_distinct(col("id"))})

        rows = sorted(engine.collect(grouped), key=lambda r: r["n"])
        assert rows == [{"k": "a", "n": 1}, {"k": None, "n": 2}]

    def test_requires_a_key(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"a": "1"}])

        with pytest.raises(PipelineError, match="at least one key"):
            engine.group_aggregate(rel, keys={}, aggregates={"n": count()})

    def test_aggregate_name_collision(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"a": "1"}])

        with pytest.raises(PipelineError, match="collide"):
            engine.group_aggregate(rel, keys={"a": col("a")}, aggregates={"a": count()})


class TestJoin:
    @pytest.fixture
    def sides(self, engine: MemoryEngine) -> tuple:
        left = _load(engine, "left", [{"lk": "1", "lv": "a"}, {"lk": "2", "lv": "b"}, {"lk": None, "lv": "c"}])
        right = _load(engine, "right", [{"rk": "1", "rv": "x"}, {"rk": "3", "rv": "y"}, {"rk": None, "rv": "z"}])
        return left, right

    def test_inner(self, engine: MemoryEngine, sides: tuple) -> None:
        joined = engine.join(*sides, on=[("lk", "rk")], how="inner", validate="one_to_one")

        assert engine.collect(joined) == [{"lk": "1", "lv": "a", "rk": "1", "rv": "x"}]

    def test_left_keeps_unmatched_and_null_keys(self, engine: MemoryEngine, sides: tuple) -> None:
        joined = engine.join(*sides, on=[("lk", "rk")], how="left")

        rows = engine.collect(joined)
        assert [r["lv"] for r in rows] == ["a", "b", "c"]
        assert rows[1]["rv"] is None
        assert rows[2]["rk"] is None

    def test_full_keeps_both_sides(self, engine: MemoryEngine, sides: tuple) -> None:
        joined = engine.join(*sides, on=[("lk", "rk")], how="full")

        rows = engine.collect(joined)
        assert len(rows) == 5
        assert {r["rv"] for r in rows if r["lk"] is None and r["lv"] is None} == {"y", "z"}

    def test_many_to_one_violation(self, engine: MemoryEngine) -> None:
        left = _load(engine, "l", [{"lk": "1"}])
        right = _load(engine, "r", [{"rk": "1"}, {"rk": "1"}])

        with pytest.raises(JoinCardinalityError, match="not unique in right dataset"):
            engine.join(left, right, on=[("lk", "rk")], how="left", validate="many_to_one")

    def test_one_to_many_violation(self, engine: MemoryEngine) -> None:
        left = _load(engine, "l", [{"lk": "1"}, {"lk": "1"}])
        right = _load(engine, "r", [{"rk": "1"}])

        with pytest.raises(JoinCardinalityError, match="not unique in left dataset"):
            engine.join(left, right, on=[("lk", "rk")], validate="one_to_many")

    def test_duplicate_null_keys_do_not_violate(self, engine: MemoryEngine) -> None:
        left = _load(engine, "l", [{"lk": "1"}])
        right = _load(engine, "r", [{"rk": None}, {"rk": None}])

        joined = engine.join(left, right, on=[("lk", "rk")], how="left", validate="many_to_one")

        assert engine.count(joined) == 1

    def test_many_to_many_fans_out(self, engine: MemoryEngine) -> None:
        left = _load(engine, "l", [{"lk": "1"}, {"lk": "1"}])
        right = _load(engine, "r", [{"rk": "1"}, {"rk": "1"}])

        assert engine.count(engine.join(left, right, on=[("lk", "rk")])) == 4

    def test_overlapping_columns_rejected(self, engine: MemoryEngine) -> None:
        left = _load(engine, "l", [{"id": "1"}])
        right = _load(engine, "r", [{"id": "1"}])

        with pytest.raises(PipelineError, match="share column names"):
            engine.join(left, right, on=[("id", "id")])

    @pytest.mark.parametrize("how,validate", [("right", "one_to_one"), ("inner", "one_to_some")])
    def test_invalid_options(self, engine: MemoryEngine, sides: tuple, how: str, validate: str) -> None:
        with pytest.raises(PipelineError):
            engine.join(*sides, on=[("lk", "rk")], how=how, validate=validate)


class TestSort:
    def test_multi_key_with_nulls_last(self, engine: MemoryEngine) -> None:
        rel = _load(
            engine,
            "t",
            [
                {"m": "2024-01", "t": "b"},
                {"m": "2024-02", "t": None},
                {"m": "2024-02", "t": "a"},
                {"m": "2024-01", "t": "a"},
            ],
        )

        ordered = engine.sort(rel, [SortKey("m", descending=True), SortKey("t")])

        assert [(r["m"], r["t"]) for r in engine.collect(ordered)] == [
            ("2024-02", "a"),
            ("2024-02", None),
            ("2024-01", "a"),
            ("2024-01", "b"),
        ]

    def test_nulls_first(self, engine: MemoryEngine) -> None:
        rel = _load(engine, "t", [{"t": "a"}, {"t": None}])

        ordered = engine.sort(rel, [SortKey("t", nulls_last=False)])

        assert [r["t"] for r in engine.collect(ordered)] == [None, "a"]
