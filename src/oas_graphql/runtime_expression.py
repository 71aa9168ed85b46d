"""Evaluate the runtime expressions used by link parameters.

Supported expressions::

    $url  $method  $statusCode
    $request.body  $request.body#/json/pointer
    $request.query.NAME  $request.path.NAME  $request.header.NAME
    $response.body  $response.body#/json/pointer
    $response.query.NAME  $response.path.NAME  $response.header.NAME

A link parameter may also be a template such as ``/users/{$response.body#/id}``
in which every ``{...}`` span is evaluated and the result concatenated with
the surrounding text.
"""

import copy
import json
import logging
import re
from typing import Any

from oas_graphql.context import CallState
from oas_graphql.errors import RuntimeExpressionError
from oas_graphql.http import get_header
from oas_graphql.naming import sanitize
from oas_graphql.oas.tools import resolve_pointer

logger = logging.getLogger(__name__)

_EXPRESSION = re.compile(
    r"^\$(?:url|method|statusCode)$"
    r"|^\$(?:request|response)\.(?:body(?:#.*)?|(?:query|path|header)\..+)$"
)
_TEMPLATE_SPAN = re.compile(r"\{([^{}]*)\}")


def is_runtime_expression(value: Any) -> bool:
    return isinstance(value, str) and _EXPRESSION.match(value) is not None


def evaluate(expression: str, state: CallState, parent: Any) -> Any:
    """Evaluate one runtime expression.

    ``state`` is the call state recorded by the parent field and ``parent``
    the data it returned.
    """
    if not is_runtime_expression(expression):
        raise RuntimeExpressionError(
            f"Cannot create link because '{expression}' is an invalid runtime expression"
        )

    if expression == "$url":
        return state.used_request.url if state.used_request else None
    if expression == "$method":
        return state.used_request.method if state.used_request else None
    if expression == "$statusCode":
        return state.used_status_code

    source, _, reference = expression[1:].partition(".")
    if reference.startswith("body"):
        body = state.used_payload if source == "request" else parent
        pointer = reference[len("body"):]
        if not pointer:
            return copy.deepcopy(body)
        return _follow_pointer(pointer[1:], body, expression)

    location, _, name = reference.partition(".")
    if location in ("query", "path"):
        return state.used_params.get(sanitize(name))
    if source == "request":
        headers = state.used_request.headers if state.used_request else {}
    else:
        headers = state.response_headers
    return get_header(headers, name)


def resolve_link_argument(value: Any, state: CallState, parent: Any) -> Any:
    """Resolve the value bound to a link parameter.

    Values without ``{...}`` are either a runtime expression or a literal.
    """
    if not isinstance(value, str):
        return value
    if "{" not in value and "}" not in value:
        if is_runtime_expression(value):
            return evaluate(value, state, parent)
        return value

    def substitute(match: re.Match) -> str:
        return _to_text(evaluate(match.group(1), state, parent))

    return _TEMPLATE_SPAN.sub(substitute, value)


def _follow_pointer(pointer: str, body: Any, expression: str) -> Any:
    try:
        return copy.deepcopy(resolve_pointer(pointer, body))
    except KeyError:
        pass
    # response bodies are stored with sanitized keys
    sanitized = "/".join(
        sanitize(token) if token and not token.isdigit() else token for token in pointer.split("/")
    )
    try:
        return copy.deepcopy(resolve_pointer(sanitized, body))
    except KeyError:
        logger.warning("Runtime expression '%s' does not match any value", expression)
        return None


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
