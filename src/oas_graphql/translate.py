"""Create a GraphQL schema from OpenAPI documents and run queries against it."""

import logging
from typing import Any

from graphql import ExecutionResult, GraphQLField, GraphQLObjectType, GraphQLSchema, graphql

from oas_graphql.auth import create_viewers
from oas_graphql.context import ResolveContext
from oas_graphql.errors import Report, TranslationError, handle_warning
from oas_graphql.graphql_tools import get_empty_object_type
from oas_graphql.http import HttpClient, RequestsClient
from oas_graphql.naming import sanitize, uncapitalize
from oas_graphql.oas.base import DefinitionKind, Operation, OperationType
from oas_graphql.oas.loader import check_document
from oas_graphql.options import Options
from oas_graphql.preprocessor import Registry, preprocess
from oas_graphql.resolver import get_resolver
from oas_graphql.schema_builder import get_args, get_graphql_type

logger = logging.getLogger(__name__)


def create_graphql_schema(
    documents: dict | list[dict],
    options: Options | dict | None = None,
    http_client: HttpClient | None = None,
) -> tuple[GraphQLSchema, Report]:
    """Translate one or more OpenAPI 3 documents into a GraphQL schema.

    Returns the schema and a report of the warnings raised while translating.
    Resolvers of the schema call the REST API through ``http_client``, a
    requests based client by default.
    """
    if options is None:
        options = Options()
    elif isinstance(options, dict):
        options = Options.model_validate(options)
    if isinstance(documents, dict):
        documents = [documents]
    documents = [check_document(doc) for doc in documents]

    registry = preprocess(documents, options)
    registry.http_client = http_client or RequestsClient()
    preliminary_checks(registry)

    try:
        schema = _build_schema(registry)
    except TypeError as exc:
        # graphql-core wraps errors raised while resolving field thunks
        cause = exc
        while cause is not None and not isinstance(cause, TranslationError):
            cause = cause.__cause__
        if cause is None:
            raise
        raise cause from None

    logger.debug(
        "Created %d queries and %d mutations from %d operations",
        registry.report.num_queries_created,
        registry.report.num_mutations_created,
        registry.report.num_ops,
    )
    return schema, registry.report


def _sort_key(operation: Operation) -> tuple[bool, bool]:
    # objects before lists, GET before other methods
    return operation.response_definition.kind is DefinitionKind.ARRAY, operation.method != "get"


def _build_schema(registry: Registry) -> GraphQLSchema:
    options = registry.options
    query_fields: dict[str, GraphQLField] = {}
    mutation_fields: dict[str, GraphQLField] = {}
    auth_query_fields: dict[str, dict[str, GraphQLField]] = {}
    auth_mutation_fields: dict[str, dict[str, GraphQLField]] = {}

    for operation_id, operation in sorted(registry.operations.items(), key=lambda item: _sort_key(item[1])):
        if operation.operation_type is OperationType.SUBSCRIPTION:
            logger.warning("Skipping '%s': subscriptions are not supported", operation.operation_string)
            continue
        field = get_field_for_operation(operation, registry)

        is_query = operation.operation_type is OperationType.QUERY
        if operation.in_viewer:
            auth_fields = auth_query_fields if is_query else auth_mutation_fields
            targets = [auth_fields.setdefault(req, {}) for req in operation.security_requirements]
        else:
            targets = [query_fields if is_query else mutation_fields]

        for fields in targets:
            # mutations are always named after the operationId
            field_name = uncapitalize(operation.response_definition.output_type_name)
            if not is_query or field_name in fields or options.operation_id_field_names:
                field_name = sanitize(operation_id)
            _add_field(fields, field_name, field, operation, registry)

    registry.report.num_queries_created = len(query_fields) + sum(map(len, auth_query_fields.values()))
    registry.report.num_mutations_created = len(mutation_fields) + sum(map(len, auth_mutation_fields.values()))

    query_fields.update(create_viewers(auth_query_fields, registry))
    mutation_fields.update(create_viewers(auth_mutation_fields, registry, is_mutation=True))

    query = get_empty_object_type("Query")
    if query_fields:
        query = GraphQLObjectType(
            name="Query", description="The start of any query", fields=dict(sorted(query_fields.items()))
        )
    mutation = None
    if mutation_fields:
        mutation = GraphQLObjectType(
            name="Mutation", description="The start of any mutation", fields=dict(sorted(mutation_fields.items()))
        )
    return GraphQLSchema(query=query, mutation=mutation)


def _add_field(
    fields: dict[str, GraphQLField], name: str, field: GraphQLField, operation: Operation, registry: Registry
) -> None:
    if name in fields:
        handle_warning(
            "DUPLICATE_FIELD_NAME",
            f"Multiple operations have the field name '{name}'. "
            f"Operation '{operation.operation_string}' will be ignored.",
            registry,
        )
        return
    fields[name] = field


def get_field_for_operation(operation: Operation, registry: Registry) -> GraphQLField:
    """The root field that answers ``operation``."""
    payload_definition = operation.payload_definition
    return GraphQLField(
        get_graphql_type(operation.response_definition, registry, operation),
        args=get_args(operation.parameters, operation, registry, payload_definition),
        resolve=get_resolver(
            operation,
            registry,
            payload_name=payload_definition.input_type_name if payload_definition else None,
        ),
        description=operation.description,
    )


def preliminary_checks(registry: Registry) -> None:
    """Warn about duplicate titles and custom resolvers that match nothing."""
    titles = [doc.get("info", {}).get("title", "") for doc in registry.documents]
    for title in sorted({title for title in titles if titles.count(title) > 1}):
        handle_warning("MULTIPLE_OAS_SAME_TITLE", f"Multiple documents share the title '{title}'.", registry)

    for title, paths in registry.options.custom_resolvers.items():
        doc = registry.document_by_title(title)
        if doc is None:
            handle_warning(
                "CUSTOM_RESOLVER_UNKNOWN_OAS",
                f"Custom resolvers reference the unknown document '{title}'.",
                registry,
            )
            continue
        for path, methods in paths.items():
            for method in methods:
                if method.lower() not in ((doc.get("paths") or {}).get(path) or {}):
                    handle_warning(
                        "CUSTOM_RESOLVER_UNKNOWN_PATH_METHOD",
                        f"A custom resolver references the unknown operation '{method.upper()} {path}' "
                        f"in '{title}'.",
                        registry,
                    )


async def execute(
    schema: GraphQLSchema,
    query: str,
    variables: dict[str, Any] | None = None,
    context: Any = None,
) -> ExecutionResult:
    """Run ``query`` against a translated schema.

    ``context`` is made available to the resolvers, e.g. to look up an
    OAuth token with the ``token_json_path`` option.
    """
    return await graphql(
        schema,
        query,
        variable_values=variables,
        context_value=ResolveContext(user=context),
    )
