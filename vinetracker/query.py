"""
SQL builder for the order query engine.

Composes a fixed set of named predicate fragments into one WHERE clause.
Caller values are always bound as DuckDB named parameters ($name) and are
never formatted into SQL text; sort columns come from a fixed mapping.
"""
from datetime import tzinfo
from typing import Any, Dict, List, Optional, Tuple

from vinetracker.config import THRIFT_FACTOR
from vinetracker.filters import OrderFilter, SortDirection, SortField
from vinetracker.models import ORDER_COLUMNS

ADJUSTED_ETV_SQL = "etv * COALESCE(etv_factor, 0)"

# Named predicate fragments; each lists the parameters it binds
PREDICATES: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "not_cancelled": ("cancelled_at IS NULL", ()),
    "cancelled": ("cancelled_at IS NOT NULL", ()),
    "needs_review": (
        """etv != 0 AND (
            etv_factor IS NULL
            OR (etv_factor != $thrift_factor AND etv_factor != 1 AND etv_reason IS NULL)
        )""",
        ("thrift_factor",),
    ),
    "ordered_between": ("ordered_at BETWEEN $bound_start AND $bound_end", ("bound_start", "bound_end")),
    "delivered_between": ("delivered_at BETWEEN $bound_start AND $bound_end", ("bound_start", "bound_end")),
    "text_search": (
        "(number ILIKE $search_pattern ESCAPE '\\'"
        " OR asin ILIKE $search_pattern ESCAPE '\\'"
        " OR product ILIKE $search_pattern ESCAPE '\\')",
        ("search_pattern",),
    ),
}

SORT_COLUMNS: Dict[SortField, str] = {
    SortField.ORDERED_AT: "ordered_at",
    SortField.ETV: "etv",
    SortField.ETV_FACTOR: "etv_factor",
    SortField.ADJUSTED_ETV: "adjusted_etv",
}


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches as a literal substring."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrderQueryBuilder:
    """
    Builds parameterized SELECT and COUNT statements for an OrderFilter.

    Usage:
        builder = OrderQueryBuilder(OrderFilter(year=2024))
        sql, params = builder.build()
        rows = conn.execute(sql, params).fetchall()
    """

    def __init__(
        self,
        options: OrderFilter,
        tz: Optional[tzinfo] = None,
        thrift_factor: float = THRIFT_FACTOR,
    ):
        self.options = options.validate()
        self.tz = tz
        self.thrift_factor = thrift_factor

    def predicates(self) -> List[str]:
        """Names of the predicate fragments this filter applies, in order."""
        opts = self.options
        names = ["cancelled" if opts.cancelled else "not_cancelled"]

        if opts.non_adjusted_only:
            names.append("needs_review")

        if opts.date_bounds(self.tz) is not None:
            names.append("delivered_between" if opts.by_delivered else "ordered_between")

        if opts.text_search is not None:
            names.append("text_search")

        return names

    def _values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {"thrift_factor": self.thrift_factor}

        bounds = self.options.date_bounds(self.tz)
        if bounds is not None:
            values["bound_start"] = bounds.start_storage
            values["bound_end"] = bounds.end_storage

        if self.options.text_search is not None:
            values["search_pattern"] = f"%{escape_like(self.options.text_search)}%"

        return values

    def where(self) -> Tuple[str, Dict[str, Any]]:
        """Build the WHERE clause body and its named parameters."""
        values = self._values()
        clauses = []
        params: Dict[str, Any] = {}

        for name in self.predicates():
            sql, param_names = PREDICATES[name]
            clauses.append(sql)
            for param in param_names:
                params[param] = values[param]

        return " AND ".join(clauses), params

    def build_select(self) -> Tuple[str, Dict[str, Any]]:
        """SELECT with sort and pagination."""
        where_clause, params = self.where()
        opts = self.options

        sort_column = SORT_COLUMNS[opts.sort]
        direction = "ASC" if opts.direction == SortDirection.ASC else "DESC"

        query = f"""
            SELECT {", ".join(ORDER_COLUMNS)}, {ADJUSTED_ETV_SQL} AS adjusted_etv
            FROM orders
            WHERE {where_clause}
            ORDER BY {sort_column} {direction}
        """

        if opts.limit is not None:
            query += " LIMIT $limit"
            params["limit"] = opts.limit

        if opts.offset is not None:
            query += " OFFSET $offset"
            params["offset"] = opts.offset

        return query, params

    def build_count(self) -> Tuple[str, Dict[str, Any]]:
        """COUNT over the same predicate; sort and pagination are ignored."""
        where_clause, params = self.where()
        return f"SELECT COUNT(*) FROM orders WHERE {where_clause}", params

    def build(self) -> Tuple[str, Dict[str, Any]]:
        """Build the statement for the filter's mode."""
        if self.options.count_only:
            return self.build_count()
        return self.build_select()
