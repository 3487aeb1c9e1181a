"""
Compile the nested all/either search DSL into Elasticsearch bool queries
"""

import re
from typing import Any, Dict, List, Mapping, Sequence

from .exceptions import MalformedQueryError

COMBINATORS = {"all", "either"}

WORD_CHAR = re.compile(r"\w")
WILDCARD_CHARS = re.compile(r"[*?]")


def build_search_body(node: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Build a complete search request body from a DSL query

    Example:
    {"either": [{"name": "Moose"}, {"name": "Moo*"}]} ->
        {"query": {"bool": {"should": [{"term": {"name": "Moose"}},
                                       {"wildcard": {"name": "Moo*"}}],
                            "minimum_should_match": 1}}}
    """
    return {"query": compile_query(node)}


def compile_query(node: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Translate one DSL node (and its children) into a bool/term/wildcard query

    Nodes are validated in pre-order: a node's own shape is checked before
    any of its children, and children are visited left to right. The first
    violation found raises MalformedQueryError.
    """
    key = _read_query_key(node)

    if key in COMBINATORS:
        elements = [compile_query(child) for child in node[key]]
        if key == "all":
            return {"bool": {"must": elements}}
        return {"bool": {"should": elements, "minimum_should_match": 1}}

    return _build_query_element(key, node[key])


def _read_query_key(node: Any) -> str:
    # every node is a single key/value mapping
    if not isinstance(node, Mapping) or len(node) != 1:
        raise MalformedQueryError("wrong number of query arguments")

    (key,) = node.keys()

    if key in COMBINATORS and not _is_sequence(node[key]):
        raise MalformedQueryError("wrong type for combinator")

    return key


def _build_query_element(field: str, value: Any) -> Dict[str, Any]:
    if not isinstance(value, str) or not WORD_CHAR.search(value):
        raise MalformedQueryError("wrong type of query arguments")

    qtype = "wildcard" if WILDCARD_CHARS.search(value) else "term"
    return {qtype: {field: value}}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def query_fields(node: Mapping[str, Any]) -> List[str]:
    """
    List the field names a DSL query matches on, in order of appearance

    Example:
    {"all": [{"author": "ETHER"}, {"either": [{"name": "Moo"}, {"name": "Moose"}]}]} ->
        ["author", "name"]
    """
    fields: List[str] = []
    key = _read_query_key(node)
    if key in COMBINATORS:
        for child in node[key]:
            for field in query_fields(child):
                if field not in fields:
                    fields.append(field)
    else:
        fields.append(key)
    return fields
