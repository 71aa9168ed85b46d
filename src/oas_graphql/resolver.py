"""Resolvers that answer GraphQL fields by calling the REST API."""

import json
import logging
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import urlencode

from oas_graphql.auth import get_auth_options, get_oauth_token
from oas_graphql.context import CallState, RequestRecord, record_state, recover_state
from oas_graphql.errors import LimitArgumentError, RequestError, ResponseError
from oas_graphql.http import HttpRequest, HttpResponse, trim
from oas_graphql.naming import desanitize, sanitize, sanitize_keys
from oas_graphql.oas import tools
from oas_graphql.oas.base import DataDefinition, DefinitionKind, Operation, Param
from oas_graphql.runtime_expression import resolve_link_argument

if TYPE_CHECKING:
    from oas_graphql.preprocessor import Registry

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def get_resolver(
    operation: Operation,
    registry: "Registry",
    args_from_link: dict[str, Any] | None = None,
    payload_name: str | None = None,
) -> Callable:
    """Create the resolver of the field for ``operation``.

    ``args_from_link`` binds arguments to literals or runtime expressions
    when the field is a link. ``payload_name`` is the input type name of the
    request body argument.
    """
    options = registry.options
    custom = options.lookup(options.custom_resolvers, operation.title, operation.path, operation.method)
    if custom is not None:
        return custom

    base_url = (options.base_url or tools.get_base_url(operation)).rstrip("/")
    args_from_link = args_from_link or {}

    async def resolve(source: Any, info: Any, **args: Any) -> Any:
        state = recover_state(info)

        for param_name, value in args_from_link.items():
            args[sanitize(param_name)] = resolve_link_argument(value, state, source)

        for param in operation.parameters:
            if param.name and args.get(sanitize(param.name)) is None:
                default = _default(param, operation)
                if default is not None:
                    args[sanitize(param.name)] = default

        state.used_params.update(args)

        path, query, headers = extract_request_data_from_args(operation.path, operation.parameters, args)
        url = base_url + path
        if operation.payload_content_type:
            headers["content-type"] = operation.payload_content_type
        headers["accept"] = operation.response_content_type or tools.JSON_CONTENT_TYPE
        headers.update(options.headers)
        query.update(options.query_params)

        body = None
        state.used_payload = None
        if payload_name is not None:
            body, state.used_payload = _serialize_payload(
                args.get(sanitize(payload_name)), operation.payload_content_type, registry
            )

        auth_headers, auth_query, auth_cookies = get_auth_options(operation, state, registry)
        headers.update(auth_headers)
        query.update(auth_query)
        if auth_cookies:
            cookies = [headers["cookie"]] if "cookie" in headers else []
            headers["cookie"] = "; ".join(cookies + auth_cookies)

        token = get_oauth_token(options.token_json_path, getattr(info.context, "user", info.context))
        if token is not None:
            if options.send_oauth_token_in_query:
                query["access_token"] = token
            else:
                headers["Authorization"] = f"Bearer {token}"

        state.used_request = RequestRecord(method=operation.method, url=url, headers=headers, query=query)
        state.used_status_code = operation.status_code

        logger.debug("Resolving %s via %s %s", info.field_name, operation.method.upper(), url)
        response = await registry.http_client.send(
            HttpRequest(method=operation.method, url=url, headers=headers, query=query, body=body)
        )
        return _handle_response(response, operation, registry, state, args, info)

    return resolve


def _default(param: Param, operation: Operation) -> Any:
    schema = param.param_schema
    if schema is None and param.content and tools.JSON_CONTENT_TYPE in param.content:
        schema = (param.content[tools.JSON_CONTENT_TYPE] or {}).get("schema")
    schema = tools.deref(schema, operation.document)
    return schema.get("default") if isinstance(schema, dict) else None


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def extract_request_data_from_args(
    path: str, parameters: list[Param], args: dict[str, Any]
) -> tuple[str, dict[str, Any], dict[str, str]]:
    """Route arguments to the path, the query string, headers or cookies."""
    query: dict[str, Any] = {}
    headers: dict[str, str] = {}
    cookies: list[str] = []

    for param in parameters:
        if not param.name:
            continue
        sane_name = sanitize(param.name)
        value = args.get(sane_name)
        if value is None:
            if param.location == "path":
                raise RequestError(f"Missing a value for the path parameter '{param.name}' of {path}")
            continue

        if param.location == "path":
            path = path.replace(f"{{{param.name}}}", _to_text(value))
        elif param.location == "query":
            query[param.name] = value if isinstance(value, list) else _to_text(value)
        elif param.location == "header":
            headers[param.name] = _to_text(value)
        elif param.location == "cookie":
            cookies.append(f"{param.name}={_to_text(value)}")
        else:
            logger.warning(
                "Parameter '%s' is declared in the unsupported location '%s' and is not sent",
                param.name, param.location,
            )

    if cookies:
        headers["cookie"] = "; ".join(cookies)
    return path, query, headers


def _serialize_payload(value: Any, content_type: str | None, registry: "Registry") -> tuple[Any, Any]:
    """Return the request body and the payload recorded for runtime expressions."""
    if value is None:
        return None, None
    if content_type == tools.JSON_CONTENT_TYPE:
        raw = desanitize(registry.name_map, value)
        return json.dumps(raw), raw
    if content_type == FORM_CONTENT_TYPE and isinstance(value, dict):
        raw = desanitize(registry.name_map, value)
        return urlencode(raw, doseq=True), raw
    return value, value


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _handle_response(
    response: HttpResponse,
    operation: Operation,
    registry: "Registry",
    state: CallState,
    args: dict[str, Any],
    info: Any,
) -> Any:
    if not 200 <= response.status_code <= 299:
        logger.debug("%s returned %s: %s", operation.operation_string, response.status_code, trim(response.text))
        extensions = None
        if registry.options.provide_error_extensions:
            extensions = {
                "method": operation.method.upper(),
                "path": operation.path,
                "statusCode": response.status_code,
                "responseHeaders": response.headers,
                "responseBody": _parse_body(response.text),
            }
        raise ResponseError(f"Could not invoke operation {operation.operation_string}", extensions)

    content_type = response.header("content-type")
    if content_type is None:
        if operation.response_content_type is None:
            return None
        raise ResponseError(
            f"Operation {operation.operation_string} should have a content-type but has none"
        )

    expected = operation.response_content_type or tools.JSON_CONTENT_TYPE
    if expected not in content_type and content_type not in expected:
        raise ResponseError(
            f"Operation {operation.operation_string} should have a content-type '{expected}' "
            f"but has '{content_type}' instead"
        )

    if tools.JSON_CONTENT_TYPE not in content_type:
        return response.text

    try:
        data = json.loads(response.text)
    except ValueError as exc:
        raise ResponseError(
            f"Cannot JSON parse response of operation {operation.operation_string}: {exc}"
        ) from exc

    data = stringify_objects_without_properties(sanitize_keys(data), operation.response_definition)

    if "limit" in args and not any(param.name == "limit" for param in operation.parameters):
        data = _apply_limit(data, args["limit"])

    state.response_headers = response.headers
    record_state(info, state)
    return data


def _apply_limit(data: Any, limit: int | None) -> Any:
    if limit is None or not isinstance(data, list):
        return data
    if limit < 0:
        raise LimitArgumentError("Auto-generated 'limit' argument must be greater than or equal to 0")
    if not any(isinstance(item, (dict, list)) for item in data):
        return data
    return data[:limit]


def stringify_objects_without_properties(data: Any, definition: DataDefinition) -> Any:
    """Replace objects typed as strings (no declared properties) by their JSON text."""
    if definition.kind is DefinitionKind.OBJECT:
        if not isinstance(data, dict):
            return data
        if not definition.sub_definitions:
            return json.dumps(data)
        for prop_name, prop_definition in definition.sub_definitions.items():
            key = sanitize(prop_name)
            if key in data:
                data[key] = stringify_objects_without_properties(data[key], prop_definition)
        return data
    if definition.kind is DefinitionKind.ARRAY and isinstance(data, list):
        return [stringify_objects_without_properties(item, definition.sub_definitions) for item in data]
    return data
