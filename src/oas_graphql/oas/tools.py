"""Helpers to read OpenAPI 3 documents."""

import logging
import re
from typing import TYPE_CHECKING, Any

from oas_graphql.errors import UnresolvableReferenceError, handle_warning
from oas_graphql.naming import capitalize, sanitize, uncapitalize
from oas_graphql.oas.base import DefinitionKind, Link, Param

if TYPE_CHECKING:
    from oas_graphql.oas.base import Operation
    from oas_graphql.preprocessor import Registry

logger = logging.getLogger(__name__)

OPERATION_METHODS = ("get", "put", "post", "patch", "delete", "options", "head")
SUCCESS_STATUS = re.compile(r"^2[0-9]{2}$|^2XX$")
JSON_CONTENT_TYPE = "application/json"
_SCALAR_TYPES = ("string", "integer", "number", "boolean")


def _decode_pointer_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def resolve_pointer(pointer: str, obj: Any) -> Any:
    """Follow a JSON pointer such as ``/a/b/0`` into ``obj``.

    Raises KeyError if a segment does not exist.
    """
    if pointer in ("", "/"):
        return obj
    node = obj
    for raw in pointer.lstrip("/").split("/"):
        token = _decode_pointer_token(raw)
        if isinstance(node, list):
            try:
                node = node[int(token)]
            except (ValueError, IndexError) as exc:
                raise KeyError(token) from exc
        elif isinstance(node, dict) and token in node:
            node = node[token]
        else:
            raise KeyError(token)
    return node


def resolve_ref(ref: str, doc: dict) -> Any:
    """Resolve a local reference like ``#/components/schemas/Pet``."""
    if not ref.startswith("#"):
        raise UnresolvableReferenceError(f"Could not resolve reference '{ref}'")
    try:
        return resolve_pointer(ref[1:], doc)
    except KeyError as exc:
        raise UnresolvableReferenceError(f"Could not resolve reference '{ref}'") from exc


def deref(obj: Any, doc: dict) -> Any:
    """Return ``obj`` with a top-level ``$ref`` resolved."""
    seen = set()
    while isinstance(obj, dict) and isinstance(obj.get("$ref"), str):
        ref = obj["$ref"]
        if ref in seen:
            raise UnresolvableReferenceError(f"Circular reference '{ref}'")
        seen.add(ref)
        obj = resolve_ref(ref, doc)
    return obj


def ref_name(schema: Any) -> str | None:
    """The last path segment of a schema's ``$ref``, if it has one."""
    if isinstance(schema, dict) and isinstance(schema.get("$ref"), str):
        return schema["$ref"].split("/")[-1]
    return None


def is_operation(method: str) -> bool:
    return method.lower() in OPERATION_METHODS


def _operations(doc: dict):
    for path, path_item in (doc.get("paths") or {}).items():
        for method in path_item:
            if is_operation(method):
                yield path, method


def count_operations(doc: dict) -> int:
    return sum(1 for _ in _operations(doc))


def count_operations_query(doc: dict) -> int:
    return sum(1 for _, method in _operations(doc) if method.lower() == "get")


def count_operations_mutation(doc: dict) -> int:
    return sum(1 for _, method in _operations(doc) if method.lower() != "get")


def format_operation_string(method: str, path: str, title: str | None = None) -> str:
    if title:
        return f"{title} {method.upper()} {path}"
    return f"{method.upper()} {path}"


def generate_operation_id(method: str, path: str) -> str:
    return sanitize(f"{method}:{path}")


def infer_resource_name_from_path(path: str) -> str:
    """``/user/{userId}/car`` -> ``UserCar``"""
    return "".join(capitalize(part) for part in path.split("/") if "{" not in part and "}" not in part)


def _pick_content(content: dict) -> tuple[str | None, dict | None]:
    """Prefer JSON content, else the first declared content type."""
    if not content:
        return None, None
    content_type = JSON_CONTENT_TYPE if JSON_CONTENT_TYPE in content else next(iter(content))
    media = content[content_type] or {}
    return content_type, media.get("schema")


def _placeholder_description(base: str, schema: dict) -> str:
    if isinstance(schema.get("description"), str):
        return f"{base}\n\nOriginal top level description: '{schema['description']}'"
    return base


def get_request_schema_and_names(path: str, method: str, doc: dict) -> dict:
    """Return the payload schema of an operation and the names to call it by.

    Keys: ``content_type``, ``schema``, ``names`` and ``required``. The dict is
    empty when the operation takes no request body.
    """
    endpoint = doc["paths"][path][method]
    body = deref(endpoint.get("requestBody"), doc)
    if not isinstance(body, dict):
        return {}

    content_type, schema = _pick_content(body.get("content") or {})
    if not schema:
        return {}

    names = {"from_path": infer_resource_name_from_path(path)}
    if ref_name(schema):
        names["from_ref"] = ref_name(schema)
        schema = deref(schema, doc)
    if "title" in schema:
        names["from_schema"] = schema["title"]

    # only JSON bodies are parsed, anything else is sent as an opaque string
    if content_type != JSON_CONTENT_TYPE:
        names = {"from_path": uncapitalize("".join(capitalize(term) for term in content_type.split("/")))}
        schema = {
            "description": _placeholder_description(f"{content_type} request placeholder object", schema),
            "type": "string",
        }

    return {
        "content_type": content_type,
        "schema": schema,
        "names": names,
        "required": bool(body.get("required", False)),
    }


def get_response_status_code(path: str, method: str, doc: dict, registry: "Registry") -> str | None:
    endpoint = doc["paths"][path][method]
    codes = [str(code) for code in (endpoint.get("responses") or {})]
    success_codes = [code for code in codes if SUCCESS_STATUS.match(code)]
    if len(success_codes) > 1:
        handle_warning(
            "MULTIPLE_RESPONSES",
            f"Operation '{format_operation_string(method, path)}' has multiple success responses "
            f"({', '.join(success_codes)}).",
            registry,
            f"Selected '{success_codes[0]}'.",
        )
    return success_codes[0] if success_codes else None


def _get_response(path: str, method: str, doc: dict, status_code: str) -> dict | None:
    responses = doc["paths"][path][method].get("responses") or {}
    response = responses.get(status_code)
    if response is None and status_code.isdigit():
        response = responses.get(int(status_code))
    response = deref(response, doc)
    return response if isinstance(response, dict) else None


def get_response_schema_and_names(
    path: str, method: str, doc: dict, status_code: str | None, registry: "Registry"
) -> dict:
    """Return the response schema of an operation and the names to call it by.

    Keys: ``content_type``, ``schema`` and ``names``. The dict is empty when
    there is no usable response schema.
    """
    if status_code is None:
        return {}
    response = _get_response(path, method, doc, status_code)
    content_type, schema = _pick_content((response or {}).get("content") or {})

    if schema:
        names = {"from_path": infer_resource_name_from_path(path)}
        if ref_name(schema):
            names["from_ref"] = ref_name(schema)
            schema = deref(schema, doc)
        if "title" in schema:
            names["from_schema"] = schema["title"]

        if content_type != JSON_CONTENT_TYPE:
            schema = {
                "description": _placeholder_description(
                    "Placeholder object to access non-application/json response bodies", schema
                ),
                "type": "string",
            }
        return {"content_type": content_type, "schema": schema, "names": names}

    if registry.options.fill_empty_responses:
        return {
            "content_type": None,
            "schema": {
                "description": "Placeholder object to support operations with no response schema",
                "type": "string",
            },
            "names": {"from_path": infer_resource_name_from_path(path)},
        }
    return {}


def get_endpoint_links(path: str, method: str, doc: dict, status_code: str | None) -> dict[str, Link]:
    if status_code is None:
        return {}
    response = _get_response(path, method, doc, status_code) or {}
    links = {}
    for link_key, link in (response.get("links") or {}).items():
        links[link_key] = Link.from_oas(deref(link, doc))
    return links


def get_parameters(path: str, method: str, doc: dict) -> list[Param]:
    """Path item parameters followed by operation parameters.

    An operation parameter replaces a path item parameter with the same
    name and location.
    """
    path_item = doc["paths"][path]
    merged: dict[tuple, Param] = {}
    for raw in list(path_item.get("parameters") or []) + list(path_item[method].get("parameters") or []):
        param = Param.from_oas(deref(raw, doc))
        merged[(param.name, param.location)] = param
    return list(merged.values())


def get_servers(path: str, method: str, doc: dict) -> list[dict]:
    path_item = doc["paths"][path]
    for servers in (path_item[method].get("servers"), path_item.get("servers"), doc.get("servers")):
        if isinstance(servers, list) and servers:
            return servers
    return [{"url": "/"}]


def _build_url(server: dict) -> str:
    url = server.get("url", "/")
    for name, variable in (server.get("variables") or {}).items():
        if "default" in variable:
            url = url.replace(f"{{{name}}}", str(variable["default"]))
    return url


def get_base_url(operation: "Operation") -> str:
    url = _build_url(operation.servers[0])
    if len(operation.servers) > 1:
        logger.debug("Several servers defined for %s, using the first one '%s'", operation.operation_string, url)
    return url.rstrip("/")


def get_security_schemes(doc: dict) -> dict[str, dict]:
    schemes = (doc.get("components") or {}).get("securitySchemes") or {}
    return {key: deref(scheme, doc) for key, scheme in schemes.items()}


def get_security_requirements(path: str, method: str, security_schemes: dict, doc: dict) -> list[str]:
    """Names of the non-OAuth2 schemes required globally or by the operation."""
    results: list[str] = []
    operation = doc["paths"][path][method]
    for requirements in (doc.get("security") or [], operation.get("security") or []):
        for requirement in requirements:
            for scheme_key in requirement:
                scheme = security_schemes.get(scheme_key)
                # OAuth2 and unsupported schemes are never processed
                if scheme is not None and scheme_key not in results:
                    results.append(scheme_key)
    return results


def get_schema_kind(schema: dict, registry: "Registry") -> DefinitionKind | None:
    """Classify an already merged schema, or return None if it has no kind."""
    if isinstance(schema.get("enum"), list):
        return DefinitionKind.ENUM

    schema_type = schema.get("type")
    if schema_type == "object" and isinstance(schema.get("additionalProperties"), dict):
        return DefinitionKind.JSON
    if schema_type == "object" or "properties" in schema:
        return DefinitionKind.OBJECT
    if schema_type == "array" or "items" in schema:
        return DefinitionKind.ARRAY

    if schema_type == "integer" and schema.get("format") == "int64":
        return DefinitionKind.NUMBER
    if schema_type in ("string", "integer") and (
        schema.get("format") == "uuid" or schema.get("format") in registry.options.id_formats
    ):
        return DefinitionKind.ID
    if schema_type in _SCALAR_TYPES:
        return DefinitionKind(schema_type)
    if schema_type is not None:
        return None

    if "nullable" in schema:
        return DefinitionKind.STRING
    return None
