"""Query translation: request parameters to Query + predicates."""

from autocrud.query.translator import (
    ParamMap,
    bind_query,
    build_predicate,
    to_multimap,
    translate,
)
from autocrud.query.types import RESERVED_PARAMS, FilterPredicate, Operator, Query

__all__ = [
    "FilterPredicate",
    "Operator",
    "ParamMap",
    "Query",
    "RESERVED_PARAMS",
    "bind_query",
    "build_predicate",
    "to_multimap",
    "translate",
]
