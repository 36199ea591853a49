# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Newslens Contributors
"""
Metadata filter expressions and their compilation to Chroma `where` clauses.

Callers build filters from the closed set Equals / In / Range / And and never
write backend syntax by hand. Shape errors are rejected when an expression is
constructed; field/operator pairs the backend cannot express are rejected at
compile time with UnsupportedFilterError.

    compile_filter([])                                  -> None
    compile_filter([credibility_floor(0.6)])            -> {"credibilityScore": {"$gte": 0.6}}
    compile_filter([credibility_floor(0.6), sources(["Reuters"])])
        -> {"$and": [{"credibilityScore": {"$gte": 0.6}}, {"source": {"$in": ["Reuters"]}}]}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from newslens_core.errors import UnsupportedFilterError
from newslens_core.schema import SearchFilters, ensure_utc

SOURCE = "source"
CATEGORY = "category"
CREDIBILITY = "credibilityScore"
PUBLISHED_AT = "publishedAt"
# Chroma range operators are numeric only; dates are stored a second time as epoch seconds.
PUBLISHED_AT_TS = "publishedAtTs"

_EQUALITY_FIELDS = frozenset({SOURCE, CATEGORY})

FilterValue = Union[str, int, float, bool]


def _require_field(field: str) -> None:
    if not isinstance(field, str) or not field:
        raise ValueError("Filter field must be a non-empty string")


@dataclass(frozen=True)
class Equals:
    field: str
    value: FilterValue

    def __post_init__(self) -> None:
        _require_field(self.field)
        if not isinstance(self.value, (str, int, float, bool)):
            raise ValueError(f"Equals value for '{self.field}' must be a scalar")


@dataclass(frozen=True)
class In:
    field: str
    values: tuple[FilterValue, ...]

    def __post_init__(self) -> None:
        _require_field(self.field)
        if isinstance(self.values, (str, bytes)):
            raise ValueError(f"In values for '{self.field}' must be a collection, not a string")
        values = tuple(self.values)
        if not values:
            raise ValueError(f"In filter on '{self.field}' needs at least one value")
        object.__setattr__(self, "values", values)


@dataclass(frozen=True)
class Range:
    field: str
    gte: Any = None
    lte: Any = None

    def __post_init__(self) -> None:
        _require_field(self.field)
        if self.gte is None and self.lte is None:
            raise ValueError(f"Range filter on '{self.field}' needs gte or lte")


@dataclass(frozen=True)
class And:
    conditions: tuple["FilterExpression", ...]

    def __post_init__(self) -> None:
        conditions = tuple(self.conditions)
        for c in conditions:
            if not isinstance(c, (Equals, In, Range, And)):
                raise ValueError(f"And accepts filter expressions only (got {type(c).__name__})")
        object.__setattr__(self, "conditions", conditions)


FilterExpression = Union[Equals, In, Range, And]
FilterInput = Union[FilterExpression, Iterable[FilterExpression], None]


def to_timestamp(value: Any, *, field: str = PUBLISHED_AT, operator: str = "range") -> float:
    """Datetime or ISO-8601 string -> UTC epoch seconds."""
    if isinstance(value, datetime):
        return ensure_utc(value).timestamp()
    if isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            return ensure_utc(datetime.fromisoformat(raw)).timestamp()
        except ValueError as exc:
            raise UnsupportedFilterError(field, operator, f"not an ISO-8601 date: {value!r}") from exc
    raise UnsupportedFilterError(field, operator, f"expected datetime or ISO-8601 string, got {type(value).__name__}")


def _flatten(conditions: FilterInput) -> list[FilterExpression]:
    if conditions is None:
        return []
    if isinstance(conditions, (Equals, In, Range)):
        return [conditions]
    if isinstance(conditions, And):
        return _flatten(conditions.conditions)

    out: list[FilterExpression] = []
    for c in conditions:
        if not isinstance(c, (Equals, In, Range, And)):
            raise ValueError(f"Not a filter expression: {c!r}")
        out.extend(_flatten(c))
    return out


def _compile_one(expr: FilterExpression) -> list[dict[str, Any]]:
    if isinstance(expr, Equals):
        if expr.field not in _EQUALITY_FIELDS:
            raise UnsupportedFilterError(expr.field, "$eq")
        return [{expr.field: {"$eq": expr.value}}]

    if isinstance(expr, In):
        if expr.field not in _EQUALITY_FIELDS:
            raise UnsupportedFilterError(expr.field, "$in")
        return [{expr.field: {"$in": list(expr.values)}}]

    if isinstance(expr, Range):
        if expr.field == CREDIBILITY:
            if expr.lte is not None:
                raise UnsupportedFilterError(expr.field, "$lte", "only a lower bound is supported")
            if isinstance(expr.gte, bool) or not isinstance(expr.gte, (int, float)):
                raise UnsupportedFilterError(expr.field, "$gte", "bound must be a number")
            return [{CREDIBILITY: {"$gte": float(expr.gte)}}]

        if expr.field == PUBLISHED_AT:
            clauses = []
            if expr.gte is not None:
                clauses.append({PUBLISHED_AT_TS: {"$gte": to_timestamp(expr.gte, operator="$gte")}})
            if expr.lte is not None:
                clauses.append({PUBLISHED_AT_TS: {"$lte": to_timestamp(expr.lte, operator="$lte")}})
            return clauses

        raise UnsupportedFilterError(expr.field, "range")

    raise ValueError(f"Not a filter expression: {expr!r}")


def compile_filter(conditions: FilterInput) -> Optional[dict[str, Any]]:
    """
    Compile filter expressions into a Chroma `where` clause.

    Zero clauses -> None, one clause -> that clause, more -> {"$and": [...]}.
    """
    clauses: list[dict[str, Any]] = []
    for expr in _flatten(conditions):
        clauses.extend(_compile_one(expr))

    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def credibility_floor(minimum: float) -> Range:
    return Range(CREDIBILITY, gte=minimum)


def date_range(start: datetime | str | None = None, end: datetime | str | None = None) -> Range:
    return Range(PUBLISHED_AT, gte=start, lte=end)


def sources(values: Iterable[str]) -> In:
    return In(SOURCE, tuple(values))


def categories(values: Iterable[str]) -> In:
    return In(CATEGORY, tuple(values))


def filters_for_search(filters: SearchFilters | None) -> list[FilterExpression]:
    """Translate user-facing search filters; empty lists and unset fields add nothing."""
    if filters is None:
        return []

    out: list[FilterExpression] = []
    if filters.sources:
        out.append(sources(filters.sources))
    if filters.categories:
        out.append(categories(filters.categories))
    if filters.date_from is not None or filters.date_to is not None:
        out.append(date_range(filters.date_from, filters.date_to))
    if filters.min_credibility is not None:
        out.append(credibility_floor(filters.min_credibility))
    return out
