"""List-query parsing and compilation."""

from docforge.query.compiler import CompiledQuery, compile_query, parse_sort
from docforge.query.params import parse_query_params

__all__ = ["CompiledQuery", "compile_query", "parse_query_params", "parse_sort"]
