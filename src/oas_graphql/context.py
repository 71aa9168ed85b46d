"""Per-query state shared between resolvers.

Each resolver that calls the REST API records what it sent and received in
a CallState. Nested resolvers (links, fields below a viewer) read the state
recorded by their parent to evaluate runtime expressions and to find the
credentials to authenticate with. States are keyed by the field path of the
query with list indices left out, so every item of a list shares the state
of the call that returned the list.
"""

from typing import Any

from graphql import GraphQLResolveInfo
from graphql.pyutils import Path
from pydantic import BaseModel, Field

from oas_graphql.errors import RequestError


class RequestRecord(BaseModel):
    method: str
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)


class CallState(BaseModel):
    used_params: dict[str, Any] = Field(default_factory=dict)
    used_payload: Any = None
    used_request: RequestRecord | None = None
    used_status_code: str | None = None
    response_headers: dict[str, str] = Field(default_factory=dict)
    # sanitized security scheme name -> credentials given to a viewer
    security: dict[str, dict[str, str]] = Field(default_factory=dict)


def get_identifier(path: Path | None) -> str:
    """Join the field names of ``path``, skipping list indices."""
    keys = []
    while path is not None:
        if isinstance(path.key, str):
            keys.append(path.key)
        path = path.prev
    return "/".join(reversed(keys))


class ResolveContext(BaseModel):
    """The GraphQL context value used when executing a translated schema.

    ``user`` holds whatever the caller wants to pass along, for example the
    OAuth token looked up with ``token_json_path``.
    """

    user: Any = None
    call_states: dict[str, CallState] = Field(default_factory=dict)

    def recover(self, info: GraphQLResolveInfo) -> CallState:
        """A copy of the state recorded by the parent field, or an empty one."""
        parent = info.path.prev if info.path is not None else None
        state = self.call_states.get(get_identifier(parent))
        return state.model_copy(deep=True) if state is not None else CallState()

    def record(self, info: GraphQLResolveInfo, state: CallState) -> None:
        self.call_states[get_identifier(info.path)] = state


def recover_state(info: GraphQLResolveInfo) -> CallState:
    """The parent's call state.

    Root fields start from an empty state under any context value. Nested
    fields need the parent's state, which only a ResolveContext carries.
    """
    if isinstance(info.context, ResolveContext):
        return info.context.recover(info)
    if info.path is not None and info.path.prev is not None:
        raise RequestError(
            f"Field '{get_identifier(info.path)}' needs the state of its parent field. "
            "Execute the schema with an oas_graphql.context.ResolveContext as context value."
        )
    return CallState()


def record_state(info: GraphQLResolveInfo, state: CallState) -> None:
    if isinstance(info.context, ResolveContext):
        info.context.record(info, state)
