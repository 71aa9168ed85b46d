"""Translation options.

Options accept both the snake_case field names and the camelCase names used
by existing openapi-to-graphql configurations (``fillEmptyResponses``,
``baseUrl``, ``qs`` ...).
"""

from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

# {document title: {path: {method: value}}}
PerOperation = dict[str, dict[str, dict[str, Any]]]


class Options(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    strict: bool = False
    operation_id_field_names: bool = Field(False, alias="operationIdFieldNames")
    fill_empty_responses: bool = Field(False, alias="fillEmptyResponses")
    add_limit_argument: bool = Field(False, alias="addLimitArgument")
    id_formats: list[str] = Field([], alias="idFormats")

    headers: dict[str, str] = {}
    query_params: dict[str, str] = Field({}, alias="qs")
    base_url: str | None = Field(None, alias="baseUrl")

    custom_resolvers: dict[str, dict[str, dict[str, Callable[..., Any]]]] = Field(
        {}, alias="customResolvers"
    )
    select_query_or_mutation_field: dict[
        str, dict[str, dict[str, Literal["query", "mutation"]]]
    ] = Field({}, alias="selectQueryOrMutationField")

    viewer: bool = True
    token_json_path: str | None = Field(None, alias="tokenJSONpath")
    send_oauth_token_in_query: bool = Field(False, alias="sendOAuthTokenInQuery")

    provide_error_extensions: bool = Field(True, alias="provideErrorExtensions")
    equivalent_to_messages: bool = Field(True, alias="equivalentToMessages")

    def lookup(self, table: PerOperation, title: str, path: str, method: str) -> Any:
        """Find the entry of a per-operation table, or None."""
        return table.get(title, {}).get(path, {}).get(method.lower())
