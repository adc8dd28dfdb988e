"""
Aggregation pipelines over the relational store.

A Pipeline is an ordered list of stages (match, lookup, first, size,
add_fields, project, sort, skip, limit, group, replace_root) evaluated
against one source model. The leading ``match* sort? skip? limit?`` prefix is
compiled into a single SQLAlchemy query; every later stage works on plain
dicts produced by ``BaseModel.to_document()``.

Joins (lookups) are batched: one ``IN`` query per lookup stage, whatever the
number of input rows. A lookup whose local field holds a list yields matches
in that list's order, duplicates included.

Example::

    rows = (
        Pipeline(User)
        .match(username="alice")
        .lookup(Subscription, "id", "channel_id", "subscribers")
        .size("subscribers", "subscribers_count")
        .run(session)
    )
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from marshmallow import Schema

logger = logging.getLogger(__name__)

ASC = 1
DESC = -1

Row = Dict[str, Any]


class PipelineError(Exception):
    """A pipeline was built in a way that cannot be executed."""


def _as_keys(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v is not None]
    return [value]


def _sort_key(field: str):
    # None sorts first, like NULL in an ascending SQL ORDER BY; id breaks ties
    def key(row: Row):
        value = row.get(field)
        return (value is not None, value, row.get("id") or "")
    return key


class Stage:
    # row-local stages map every input row to exactly one output row, in order
    row_local = False

    def apply(self, rows: List[Row], session) -> List[Row]:
        raise NotImplementedError


class Match(Stage):
    """Filter rows.

    ``clauses`` are SQLAlchemy expressions and can only run as part of the
    SQL prefix. ``criteria`` map a field to a value (equality) or to a
    predicate callable and work in both places.
    """

    def __init__(self, clauses: Sequence[Any] = (), criteria: Optional[Dict[str, Any]] = None):
        self.clauses = list(clauses)
        self.criteria = dict(criteria or {})

    def to_sql(self, model, query):
        if self.clauses:
            query = query.filter(*self.clauses)
        for field, expected in self.criteria.items():
            column = getattr(model, field)
            if callable(expected):
                raise PipelineError(f"Predicate on {field!r} cannot be pushed down")
            query = query.filter(column.is_(None) if expected is None else column == expected)
        return query

    def can_push_down(self) -> bool:
        return not any(callable(v) for v in self.criteria.values())

    def apply(self, rows, session):
        if self.clauses:
            raise PipelineError("SQL clauses are only allowed before the first in-memory stage")

        def keep(row):
            for field, expected in self.criteria.items():
                value = row.get(field)
                if callable(expected):
                    if not expected(value):
                        return False
                elif value != expected:
                    return False
            return True

        return [dict(row) for row in rows if keep(row)]


class Lookup(Stage):
    row_local = True

    def __init__(self, model, local_field: str, foreign_field: str, as_field: str,
                 pipeline: Optional["Pipeline"] = None):
        self.model = model
        self.local_field = local_field
        self.foreign_field = foreign_field
        self.as_field = as_field
        self.pipeline = pipeline

    def _fetch(self, rows: List[Row], session) -> Dict[Any, List[Row]]:
        keys = set()
        for row in rows:
            keys.update(_as_keys(row.get(self.local_field)))
        if not keys:
            return {}
        column = getattr(self.model, self.foreign_field)
        found = (
            session.query(self.model)
            .filter(column.in_(keys))
            .order_by(self.model.created_at.asc(), self.model.id.asc())
            .all()
        )
        docs = [obj.to_document() for obj in found]

        if self.pipeline is not None and self.pipeline.is_row_local():
            shaped = self.pipeline.apply(docs, session)
            pairs = zip((d[self.foreign_field] for d in docs), shaped)
        else:
            pairs = ((d[self.foreign_field], d) for d in docs)

        matched: Dict[Any, List[Row]] = {}
        for key, doc in pairs:
            matched.setdefault(key, []).append(doc)
        return matched

    def apply(self, rows, session):
        matched = self._fetch(rows, session)
        per_row = self.pipeline is not None and not self.pipeline.is_row_local()
        out = []
        for row in rows:
            joined = []
            for key in _as_keys(row.get(self.local_field)):
                joined.extend(dict(doc) for doc in matched.get(key, ()))
            if per_row:
                joined = self.pipeline.apply(joined, session)
            new_row = dict(row)
            new_row[self.as_field] = joined
            out.append(new_row)
        return out


class First(Stage):
    """Fold a joined list to its first element, or None when empty."""
    row_local = True

    def __init__(self, field: str, as_field: Optional[str] = None):
        self.field = field
        self.as_field = as_field or field

    def apply(self, rows, session):
        out = []
        for row in rows:
            new_row = dict(row)
            joined = row.get(self.field) or []
            new_row[self.as_field] = joined[0] if joined else None
            out.append(new_row)
        return out


class Size(Stage):
    """Fold a joined list to its cardinality."""
    row_local = True

    def __init__(self, field: str, as_field: Optional[str] = None):
        self.field = field
        self.as_field = as_field or field

    def apply(self, rows, session):
        out = []
        for row in rows:
            new_row = dict(row)
            new_row[self.as_field] = len(row.get(self.field) or [])
            out.append(new_row)
        return out


class AddFields(Stage):
    row_local = True

    def __init__(self, computed: Dict[str, Callable[[Row], Any]]):
        self.computed = computed

    def apply(self, rows, session):
        out = []
        for row in rows:
            new_row = dict(row)
            for name, fn in self.computed.items():
                new_row[name] = fn(row)
            out.append(new_row)
        return out


class Project(Stage):
    """Reshape rows through an allowlist of fields or a marshmallow schema."""
    row_local = True

    def __init__(self, shape: Union[Schema, Sequence[str]]):
        self.shape = shape

    def apply(self, rows, session):
        if isinstance(self.shape, Schema):
            return [self.shape.dump(row) for row in rows]
        return [{name: row.get(name) for name in self.shape} for row in rows]


class Sort(Stage):
    def __init__(self, field: str, direction: int = ASC):
        if direction not in (ASC, DESC):
            raise PipelineError(f"Invalid sort direction: {direction!r}")
        self.field = field
        self.direction = direction

    def to_sql(self, model, query):
        column = getattr(model, self.field)
        if self.direction == DESC:
            return query.order_by(column.desc(), model.id.desc())
        return query.order_by(column.asc(), model.id.asc())

    def apply(self, rows, session):
        ordered = sorted(rows, key=_sort_key(self.field), reverse=self.direction == DESC)
        return [dict(row) for row in ordered]


class Skip(Stage):
    def __init__(self, count: int):
        if count < 0:
            raise PipelineError("skip must be >= 0")
        self.count = count

    def to_sql(self, model, query):
        return query.offset(self.count)

    def apply(self, rows, session):
        return [dict(row) for row in rows[self.count:]]


class Limit(Stage):
    def __init__(self, count: int):
        if count < 1:
            raise PipelineError("limit must be >= 1")
        self.count = count

    def to_sql(self, model, query):
        return query.limit(self.count)

    def apply(self, rows, session):
        return [dict(row) for row in rows[: self.count]]


class Accumulator:
    def __call__(self, rows: List[Row]) -> Any:
        raise NotImplementedError


class Sum(Accumulator):
    def __init__(self, field: str):
        self.field = field

    def __call__(self, rows):
        return sum((row.get(self.field) or 0) for row in rows)


class Count(Accumulator):
    def __call__(self, rows):
        return len(rows)


class Group(Stage):
    """Fold the whole row set into one row. Always emits exactly one row."""

    def __init__(self, accumulators: Dict[str, Accumulator]):
        self.accumulators = accumulators

    def apply(self, rows, session):
        return [{name: acc(rows) for name, acc in self.accumulators.items()}]


class ReplaceRoot(Stage):
    """Replace each row by one of its sub-documents; rows where it is missing are dropped."""

    def __init__(self, field: str):
        self.field = field

    def apply(self, rows, session):
        return [dict(row[self.field]) for row in rows if isinstance(row.get(self.field), dict)]


class Pipeline:
    """An ordered list of stages, optionally bound to a source model."""

    def __init__(self, model=None, stages: Optional[Iterable[Stage]] = None):
        self.model = model
        self.stages: List[Stage] = list(stages or [])

    # -- builders -----------------------------------------------------------

    def _add(self, stage: Stage) -> "Pipeline":
        self.stages.append(stage)
        return self

    def match(self, *clauses, **criteria) -> "Pipeline":
        return self._add(Match(clauses, criteria))

    def lookup(self, model, local_field: str, foreign_field: str, as_field: str,
               pipeline: Optional["Pipeline"] = None) -> "Pipeline":
        return self._add(Lookup(model, local_field, foreign_field, as_field, pipeline))

    def first(self, field: str, as_field: Optional[str] = None) -> "Pipeline":
        return self._add(First(field, as_field))

    def size(self, field: str, as_field: Optional[str] = None) -> "Pipeline":
        return self._add(Size(field, as_field))

    def add_fields(self, **computed: Callable[[Row], Any]) -> "Pipeline":
        return self._add(AddFields(computed))

    def project(self, shape: Union[Schema, Sequence[str]]) -> "Pipeline":
        return self._add(Project(shape))

    def sort(self, field: str, direction: int = ASC) -> "Pipeline":
        return self._add(Sort(field, direction))

    def skip(self, count: int) -> "Pipeline":
        return self._add(Skip(count))

    def limit(self, count: int) -> "Pipeline":
        return self._add(Limit(count))

    def group(self, **accumulators: Accumulator) -> "Pipeline":
        return self._add(Group(accumulators))

    def replace_root(self, field: str) -> "Pipeline":
        return self._add(ReplaceRoot(field))

    def copy(self) -> "Pipeline":
        return Pipeline(self.model, self.stages)

    # -- execution ----------------------------------------------------------

    def is_row_local(self) -> bool:
        return all(stage.row_local for stage in self.stages)

    def _split_prefix(self):
        """Split stages into the SQL-compilable prefix and the in-memory rest."""
        order = {Match: 0, Sort: 1, Skip: 2, Limit: 3}
        phase = 0
        seen = set()
        for index, stage in enumerate(self.stages):
            kind = type(stage)
            rank = order.get(kind)
            if rank is None or rank < phase:
                return self.stages[:index], self.stages[index:]
            if kind is Match and not stage.can_push_down():
                return self.stages[:index], self.stages[index:]
            if kind is not Match and kind in seen:
                return self.stages[:index], self.stages[index:]
            seen.add(kind)
            phase = rank
        return self.stages, []

    def _query(self, session, prefix: List[Stage]):
        if self.model is None:
            raise PipelineError("Pipeline has no source model")
        query = session.query(self.model)
        has_sort = any(isinstance(stage, Sort) for stage in prefix)
        for stage in prefix:
            if isinstance(stage, (Skip, Limit)) and not has_sort:
                # OFFSET/LIMIT without ORDER BY is not deterministic
                query = query.order_by(self.model.created_at.asc(), self.model.id.asc())
                has_sort = True
            query = stage.to_sql(self.model, query)
        if not has_sort:
            query = query.order_by(self.model.created_at.asc(), self.model.id.asc())
        return query

    def run(self, session) -> List[Row]:
        prefix, rest = self._split_prefix()
        rows = [obj.to_document() for obj in self._query(session, prefix).all()]
        logger.debug(
            "pipeline %s: %d row(s) from store, %d in-memory stage(s)",
            self.model.__name__, len(rows), len(rest),
        )
        return self._run_stages(rest, rows, session)

    def count(self, session) -> int:
        """Number of rows the leading match stages select."""
        matches = []
        for stage in self.stages:
            if not isinstance(stage, Match):
                break
            if not stage.can_push_down():
                raise PipelineError("count() needs SQL-compilable match stages")
            matches.append(stage)
        query = session.query(self.model)
        for stage in matches:
            query = stage.to_sql(self.model, query)
        return query.count()

    def apply(self, rows: List[Row], session) -> List[Row]:
        """Run every stage in memory over ``rows`` (used for sub-pipelines)."""
        return self._run_stages(self.stages, rows, session)

    @staticmethod
    def _run_stages(stages: Sequence[Stage], rows: List[Row], session) -> List[Row]:
        for stage in stages:
            rows = stage.apply(rows, session)
        return rows
