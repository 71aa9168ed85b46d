"""Authentication: viewer fields that collect credentials, and request signing."""

import base64
import logging
from typing import TYPE_CHECKING, Any

from graphql import GraphQLArgument, GraphQLField, GraphQLNonNull, GraphQLObjectType, GraphQLString

from oas_graphql.context import CallState, record_state
from oas_graphql.errors import AuthenticationError
from oas_graphql.naming import capitalize, sanitize
from oas_graphql.oas.base import Operation

if TYPE_CHECKING:
    from oas_graphql.preprocessor import Registry

logger = logging.getLogger(__name__)


def get_auth_options(
    operation: Operation, state: CallState, registry: "Registry"
) -> tuple[dict[str, str], dict[str, str], list[str]]:
    """Headers, query parameters and cookies that authenticate a call.

    Uses the first security requirement of the operation for which a viewer
    received credentials.
    """
    headers: dict[str, str] = {}
    query: dict[str, str] = {}
    cookies: list[str] = []
    if not operation.security_requirements:
        return headers, query, cookies

    for requirement in operation.security_requirements:
        credentials = state.security.get(sanitize(requirement))
        if credentials is not None:
            break
    else:
        raise AuthenticationError("Missing information to authenticate API request.")

    definition = registry.security[requirement].definition
    scheme_type = definition.get("type")
    if scheme_type == "apiKey":
        location, name = definition.get("in"), definition.get("name")
        api_key = credentials.get("apiKey", "")
        if location == "header":
            headers[name] = api_key
        elif location == "query":
            query[name] = api_key
        elif location == "cookie":
            cookies.append(f"{name}={api_key}")
        else:
            raise AuthenticationError(f"Cannot send API key in '{location}'")
    elif scheme_type == "http":
        if str(definition.get("scheme", "")).lower() != "basic":
            raise AuthenticationError(f"Cannot recognize http security scheme '{definition.get('scheme')}'")
        token = base64.b64encode(f"{credentials.get('username')}:{credentials.get('password')}".encode()).decode()
        headers["Authorization"] = f"Basic {token}"
    return headers, query, cookies


def get_oauth_token(token_json_path: str | None, context: Any) -> str | None:
    """Find the OAuth token in the caller context, following ``$.a.b`` style paths."""
    if not token_json_path:
        return None
    node = context
    for key in token_json_path.removeprefix("$").strip(".").split("."):
        if not key:
            continue
        if isinstance(node, dict):
            node = node.get(key)
        else:
            node = getattr(node, key, None)
        if node is None:
            logger.warning("Could not extract OAuth token from context at '%s'", token_json_path)
            return None
    return str(node)


def _viewer_label(definition: dict) -> str:
    if definition.get("type") == "http" and str(definition.get("scheme", "")).lower() == "basic":
        return "basicAuth"
    return definition.get("type", "")


def create_viewers(
    fields_by_scheme: dict[str, dict[str, GraphQLField]],
    registry: "Registry",
    is_mutation: bool = False,
) -> dict[str, GraphQLField]:
    """One viewer field per security scheme, wrapping the operations it protects.

    The viewer's arguments are the credentials of the scheme. Fields below
    the viewer find them in the call state the viewer records.
    """
    viewers: dict[str, GraphQLField] = {}
    for scheme_name, fields in fields_by_scheme.items():
        scheme = registry.security[scheme_name]
        label = _viewer_label(scheme.definition)
        base = sanitize(f"mutation viewer {label}" if is_mutation else f"viewer {label}")

        viewer_name = base
        suffix = 2
        while viewer_name in viewers or capitalize(viewer_name) in registry.used_type_names:
            viewer_name = f"{base}{suffix}"
            suffix += 1
        type_name = capitalize(viewer_name)
        registry.used_type_names.add(type_name)

        if len(registry.documents) > 1:
            type_description = f"A viewer for the security protocol '{scheme.raw_name}' in {scheme.document_title}"
        else:
            type_description = f"A viewer for the security protocol: '{scheme.raw_name}'"

        viewers[viewer_name] = GraphQLField(
            GraphQLObjectType(
                name=type_name,
                description=type_description,
                fields=dict(sorted(fields.items())),
            ),
            # credentials keep the scheme's order (username before password)
            args={name: GraphQLArgument(GraphQLNonNull(GraphQLString)) for name in scheme.parameters},
            resolve=_viewer_resolver(scheme_name),
            description=f"A viewer that wraps all operations authenticated via {label}",
        )
        logger.debug("Created viewer '%s' for security scheme '%s'", viewer_name, scheme_name)
    return viewers


def _viewer_resolver(scheme_name: str):
    def resolve(source: Any, info: Any, **args: Any) -> dict:
        record_state(info, CallState(security={sanitize(scheme_name): args}))
        return {}

    return resolve
