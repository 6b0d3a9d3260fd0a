"""Parse bracketed query strings into nested filter dicts.

Examples::

    name=Apple                      -> {"name": "Apple"}
    created[$gte]=2024-01-01        -> {"created": {"$gte": "2024-01-01"}}
    _id[$in][]=a&_id[$in][]=b       -> {"_id": {"$in": ["a", "b"]}}
    $or[0][name]=x&$or[1][name]=y   -> {"$or": [{"name": "x"}, {"name": "y"}]}
    tag=a&tag=b                     -> {"tag": ["a", "b"]}
"""

import re
from typing import Any, Iterable

_BRACKETS = re.compile(r"(\[[^\[\]]*\])+")
_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def split_key(key: str) -> list[str]:
    """Split ``a[b][]`` into ``["a", "b", ""]``; malformed keys stay whole."""
    head, sep, rest = key.partition("[")
    if not sep or not head:
        return [key]
    rest = "[" + rest
    if not _BRACKETS.fullmatch(rest):
        return [key]
    return [head, *_SEGMENT.findall(rest)]


def _insert(node: dict[str, Any], segments: list[str], value: Any) -> None:
    key = segments[0]
    if key == "":
        key = str(len(node))

    if len(segments) == 1:
        if key in node:
            existing = node[key]
            if isinstance(existing, list):
                existing.append(value)
            else:
                node[key] = [existing, value]
        else:
            node[key] = value
        return

    child = node.get(key)
    if not isinstance(child, dict):
        child = {}
        node[key] = child
    _insert(child, segments[1:], value)


def _listify(value: Any) -> Any:
    if isinstance(value, list):
        return [_listify(v) for v in value]
    if not isinstance(value, dict):
        return value
    converted = {k: _listify(v) for k, v in value.items()}
    if converted and all(k.isdigit() for k in converted):
        return [converted[k] for k in sorted(converted, key=int)]
    return converted


def parse_query_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Build a nested dict from ``(key, value)`` query pairs.

    Args:
        items: Query pairs in request order, e.g. ``request.query_params.multi_items()``

    Returns:
        Top-level dict keyed by field name (never a list)
    """
    tree: dict[str, Any] = {}
    for key, value in items:
        _insert(tree, split_key(key), value)
    return {k: _listify(v) for k, v in tree.items()}
