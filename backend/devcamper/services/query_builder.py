"""
DevCamper Backend — List Query Builder
========================================

What:  Turns list-endpoint query parameters into a bounded SQLAlchemy query
       and a uniform paginated envelope.
Who:   Every public list endpoint (bootcamps, courses, reviews, users).

Parameter grammar:
    field=value             equality            ?housing=true
    field[op]=value         comparison          ?tuition[gte]=1000
    field[in]=a,b,c         set membership      ?minimum_skill[in]=beginner,advanced
    select=a,b              returned attributes (id is always included)
    sort=-a,b               order; '-' = descending; default -created_at
    page=N, limit=N         positive ints; default 1 and 25

    A nested mapping is accepted too: {"tuition": {"gte": 1000}}.

Algorithm:
    1. Strip reserved keys (select, sort, page, limit)
    2. Parse the rest into FilterConditions over a closed Operator enum,
       coercing each value to the column's Python type
    3. Build the base query (+ route constraints, + eager loads)
    4-5. Validate select and sort against the model's columns
    6. skip = (page - 1) * limit; fetch at most `limit` rows from `skip`
    7. COUNT(*) over the same filters for next/previous descriptors

Errors:
    Unknown fields, unknown operators, and values that cannot be coerced all
    raise QueryError (400). Store faults raise StoreFailure (500).
"""

import enum
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import JSON, BigInteger, Integer, SmallInteger, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.exceptions import QueryError, StoreFailure

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({"select", "sort", "page", "limit"})
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 25
DEFAULT_SORT = (("created_at", True),)
MAX_OFFSET = 2**63 - 1

_KEY_PATTERN = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[A-Za-z]+)\])?$")
_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


class Operator(str, enum.Enum):
    EQ = "eq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"


_PREDICATES: Dict[Operator, Callable[[Any, Any], Any]] = {
    Operator.EQ: lambda column, value: column == value,
    Operator.GT: lambda column, value: column > value,
    Operator.GTE: lambda column, value: column >= value,
    Operator.LT: lambda column, value: column < value,
    Operator.LTE: lambda column, value: column <= value,
    Operator.IN: lambda column, value: column.in_(value),
}


@dataclass(frozen=True)
class FilterCondition:
    field: str
    operator: Operator
    value: Any


@dataclass(frozen=True)
class QuerySpec:
    """A parsed, validated list request. Never persisted."""

    conditions: Tuple[FilterCondition, ...] = ()
    select: Optional[Tuple[str, ...]] = None
    sort: Tuple[Tuple[str, bool], ...] = DEFAULT_SORT
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    """One page of serialized records plus pagination metadata."""

    items: List[Dict[str, Any]]
    total: int
    pagination: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "success": True,
            "count": len(self.items),
            "total": self.total,
            "pagination": self.pagination,
            "data": self.items,
        }


# ══════════════════════════════════════════════════════════════════════════
# Parsing
# ══════════════════════════════════════════════════════════════════════════

def coerce_positive_int(raw: Any, default: int, maximum: int = MAX_OFFSET) -> int:
    """
    Positive int from `raw`, or `default` for anything non-numeric or <= 0.
    Values above `maximum` are clamped to it.
    """
    if isinstance(raw, (list, tuple)):
        raw = raw[-1] if raw else None
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    if value <= 0:
        return default
    return min(value, maximum)


def query_params_to_dict(multi_items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Collapse a query-string multi-dict into a plain mapping.
    Repeated keys become lists (`?skill=a&skill=b` → {"skill": ["a", "b"]}).
    """
    result: Dict[str, Any] = {}
    for key, value in multi_items:
        if key in result:
            existing = result[key]
            result[key] = existing + [value] if isinstance(existing, list) else [existing, value]
        else:
            result[key] = value
    return result


def queryable_columns(model: Any, hidden: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Columns that may be filtered, sorted, and selected: every mapped column
    except JSON columns and the `hidden` ones (e.g. password hashes).
    """
    hidden_set = set(hidden)
    columns = {}
    for column in inspect(model).columns:
        if column.key in hidden_set or isinstance(column.type, JSON):
            continue
        columns[column.key] = column
    return columns


def _python_type(column: Any) -> type:
    try:
        return column.type.python_type
    except NotImplementedError:
        return str


def _int_bits(column: Any) -> Optional[int]:
    if isinstance(column.type, BigInteger):
        return 64
    if isinstance(column.type, SmallInteger):
        return 16
    if isinstance(column.type, Integer):
        return 32
    return None


def _check_int_range(value: Any, column: Any, field_name: str) -> Any:
    """
    Raises:
        QueryError: `value` does not fit the column's integer width
    """
    bits = _int_bits(column)
    if bits is None or not isinstance(value, int) or isinstance(value, bool):
        return value
    bound = 2 ** (bits - 1)
    if not -bound <= value < bound:
        raise QueryError(
            message=f"Value '{value}' is out of range for field '{field_name}'",
            parameter=field_name,
        )
    return value


def coerce_value(raw: Any, target: type, field_name: str) -> Any:
    """
    Convert one raw filter value to `target`.

    Raises:
        QueryError: the value cannot represent the column's type
    """
    if isinstance(raw, target) and not (target is int and isinstance(raw, bool)):
        return raw
    text = str(raw).strip()
    try:
        if target is bool:
            lowered = text.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(text)
        if target is int:
            return int(text)
        if target is float:
            return float(text)
        if target is datetime:
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text)
        if target is uuid.UUID:
            return uuid.UUID(text)
        if issubclass(target, enum.Enum):
            return target(text)
        return target(text)
    except (ValueError, TypeError) as e:
        raise QueryError(
            message=f"Invalid value '{raw}' for field '{field_name}'",
            parameter=field_name,
        ) from e


def _split_list(raw: Any) -> List[Any]:
    if isinstance(raw, (list, tuple)):
        items: List[Any] = []
        for entry in raw:
            items.extend(_split_list(entry))
        return items
    if isinstance(raw, str):
        return [part.strip() for part in raw.split(",") if part.strip()]
    return [raw]


def _parse_operator(token: str, field_name: str) -> Operator:
    try:
        return Operator(token.lower())
    except ValueError:
        raise QueryError(
            message=f"Unknown filter operator '{token}' for field '{field_name}'",
            parameter=field_name,
            context={"allowed": [op.value for op in Operator]},
        ) from None


def _build_condition(
    field_name: str,
    operator: Operator,
    raw: Any,
    columns: Mapping[str, Any],
) -> FilterCondition:
    column = columns.get(field_name)
    if column is None:
        raise QueryError(message=f"Unknown filter field '{field_name}'", parameter=field_name)
    target = _python_type(column)

    # Repeated equality values behave like a set
    if operator is Operator.EQ and isinstance(raw, (list, tuple)):
        operator = Operator.IN

    if operator is Operator.IN:
        values = [
            _check_int_range(coerce_value(item, target, field_name), column, field_name)
            for item in _split_list(raw)
        ]
        if not values:
            raise QueryError(
                message=f"Empty value list for field '{field_name}'", parameter=field_name
            )
        return FilterCondition(field_name, operator, tuple(values))

    if isinstance(raw, (list, tuple)):
        raw = raw[-1]
    value = coerce_value(raw, target, field_name)
    return FilterCondition(field_name, operator, _check_int_range(value, column, field_name))


def _parse_field_list(raw: Any, columns: Mapping[str, Any], parameter: str) -> List[str]:
    names = _split_list(raw)
    for name in names:
        bare = name[1:] if parameter == "sort" and name.startswith("-") else name
        if bare not in columns:
            raise QueryError(message=f"Unknown {parameter} field '{bare}'", parameter=parameter)
    return names


def parse_query(
    raw: Mapping[str, Any],
    model: Any,
    hidden: Iterable[str] = (),
) -> QuerySpec:
    """
    Parse raw list parameters for `model` into a QuerySpec.

    Raises:
        QueryError: unknown field/operator or a value of the wrong type
    """
    columns = queryable_columns(model, hidden)
    conditions: List[FilterCondition] = []

    for key, value in raw.items():
        if key in RESERVED_KEYS:
            continue

        if isinstance(value, Mapping):
            if key not in columns:
                raise QueryError(message=f"Unknown filter field '{key}'", parameter=key)
            for op_token, op_value in value.items():
                operator = _parse_operator(str(op_token), key)
                conditions.append(_build_condition(key, operator, op_value, columns))
            continue

        match = _KEY_PATTERN.match(key)
        if match is None:
            raise QueryError(message=f"Malformed filter parameter '{key}'", parameter=key)
        field_name = match.group("field")
        op_token = match.group("op")
        operator = _parse_operator(op_token, field_name) if op_token else Operator.EQ
        conditions.append(_build_condition(field_name, operator, value, columns))

    selected: Optional[Tuple[str, ...]] = None
    if raw.get("select"):
        selected = tuple(_parse_field_list(raw["select"], columns, "select"))

    sort: Tuple[Tuple[str, bool], ...] = DEFAULT_SORT
    if raw.get("sort"):
        sort = tuple(
            (name.lstrip("-"), name.startswith("-"))
            for name in _parse_field_list(raw["sort"], columns, "sort")
        )

    # skip = (page - 1) * limit must stay a valid 64-bit OFFSET
    limit = coerce_positive_int(raw.get("limit"), DEFAULT_LIMIT)
    page = coerce_positive_int(raw.get("page"), DEFAULT_PAGE, MAX_OFFSET // limit + 1)

    return QuerySpec(
        conditions=tuple(conditions),
        select=selected,
        sort=sort,
        page=page,
        limit=limit,
    )


# ══════════════════════════════════════════════════════════════════════════
# Execution
# ══════════════════════════════════════════════════════════════════════════

def pagination_for(spec: QuerySpec, total: int) -> Dict[str, Dict[str, int]]:
    """`next` iff skip + limit < total; `previous` iff skip > 0."""
    pagination: Dict[str, Dict[str, int]] = {}
    if spec.skip + spec.limit < total:
        pagination["next"] = {"page": spec.page + 1, "limit": spec.limit}
    if spec.skip > 0:
        pagination["previous"] = {"page": spec.page - 1, "limit": spec.limit}
    return pagination


def apply_select(
    data: Dict[str, Any],
    selected: Optional[Sequence[str]],
    keep: Iterable[str] = (),
) -> Dict[str, Any]:
    """Restrict a serialized record to `selected` (+ id + `keep`)."""
    if not selected:
        return data
    allowed = {"id", *selected, *keep}
    return {key: value for key, value in data.items() if key in allowed}


async def run_query(
    db: AsyncSession,
    model: Any,
    spec: QuerySpec,
    serializer: Callable[[Any], Dict[str, Any]],
    constraints: Sequence[Any] = (),
    options: Sequence[Any] = (),
    keep: Iterable[str] = (),
) -> Page:
    """
    Execute `spec` against `model`.

    Args:
        constraints: extra fixed WHERE clauses from the route
        options:     loader options for expanded relations (selectinload(...))
        keep:        serialized keys that survive `select` (expanded relations)
    """
    where = list(constraints)
    where.extend(
        _PREDICATES[condition.operator](getattr(model, condition.field), condition.value)
        for condition in spec.conditions
    )

    order_by = [
        getattr(model, name).desc() if descending else getattr(model, name).asc()
        for name, descending in spec.sort
    ]
    # Stable ordering across pages when sort keys tie
    order_by.append(model.id.asc())

    count_stmt = select(func.count()).select_from(model)
    stmt = select(model)
    if where:
        count_stmt = count_stmt.where(*where)
        stmt = stmt.where(*where)
    stmt = stmt.order_by(*order_by).offset(spec.skip).limit(spec.limit)
    if options:
        stmt = stmt.options(*options)

    try:
        total = (await db.execute(count_stmt)).scalar() or 0
        rows = (await db.execute(stmt)).scalars().all()
    except SQLAlchemyError as e:
        logger.error("List query on %s failed: %s", model.__tablename__, str(e), exc_info=True)
        raise StoreFailure(context={"table": model.__tablename__}) from e

    keep = tuple(keep)
    items = [apply_select(serializer(row), spec.select, keep) for row in rows]
    return Page(items=items, total=total, pagination=pagination_for(spec, total))
