"""Turn OpenAPI documents into operations and data definitions."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from oas_graphql.definitions import create_data_def
from oas_graphql.errors import Report, handle_warning
from oas_graphql.naming import sanitize
from oas_graphql.oas import tools
from oas_graphql.oas.base import DataDefinition, Operation, OperationType, ProcessedSecurityScheme
from oas_graphql.options import Options

logger = logging.getLogger(__name__)


class Registry(BaseModel):
    """Everything one translation run knows.

    Built once by :func:`preprocess` and completed while the GraphQL schema
    is created. Resolvers only read from it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    options: Options
    documents: list[dict]
    report: Report = Field(default_factory=Report)
    operations: dict[str, Operation] = Field(default_factory=dict)
    definitions: list[DataDefinition] = Field(default_factory=list)
    security: dict[str, ProcessedSecurityScheme] = Field(default_factory=dict)
    name_map: dict[str, str] = Field(default_factory=dict)
    used_type_names: set[str] = Field(default_factory=lambda: {"Query", "Mutation"})
    http_client: Any = None

    @property
    def strict(self) -> bool:
        return self.options.strict

    def find_definition(self, preferred_name: str, schema: dict) -> DataDefinition | None:
        for definition in self.definitions:
            if definition.preferred_name == preferred_name and definition.schema == schema:
                return definition
        return None

    def add_definition(self, definition: DataDefinition) -> None:
        self.definitions.append(definition)
        self.used_type_names.update((definition.output_type_name, definition.input_type_name))

    def document_by_title(self, title: str) -> dict | None:
        for doc in self.documents:
            if doc.get("info", {}).get("title") == title:
                return doc
        return None


def preprocess(documents: list[dict], options: Options) -> Registry:
    """Extract the operations and security schemes of ``documents``."""
    registry = Registry(options=options, documents=documents)
    several = len(documents) > 1

    for doc in documents:
        title = doc.get("info", {}).get("title", "")
        registry.report.num_ops += tools.count_operations(doc)
        registry.report.num_ops_query += tools.count_operations_query(doc)
        registry.report.num_ops_mutation += tools.count_operations_mutation(doc)

        for key, scheme in get_processed_security_schemes(doc, registry).items():
            if key in registry.security:
                handle_warning(
                    "DUPLICATE_SECURITY_SCHEME",
                    f"Multiple documents share a security scheme named '{key}'.",
                    registry,
                )
                continue
            registry.security[key] = scheme

        for path, path_item in (doc.get("paths") or {}).items():
            for method in path_item:
                if not tools.is_operation(method):
                    continue
                operation = _process_operation(path, method, doc, title if several else None, registry)
                if operation is None:
                    continue
                registry.operations[operation.operation_id] = operation

    return registry


def _process_operation(
    path: str, method: str, doc: dict, title: str | None, registry: Registry
) -> Operation | None:
    options = registry.options
    endpoint = doc["paths"][path][method]
    operation_string = tools.format_operation_string(method, path, title)

    description = endpoint.get("description") or endpoint.get("summary") or ""
    if options.equivalent_to_messages:
        description = f"{description}\n\nEquivalent to {operation_string}".lstrip()

    operation_id = endpoint.get("operationId") or tools.generate_operation_id(method, path)

    status_code = tools.get_response_status_code(path, method, doc, registry)
    response = tools.get_response_schema_and_names(path, method, doc, status_code, registry)
    if not response:
        handle_warning(
            "MISSING_RESPONSE_SCHEMA",
            f"Operation '{operation_string}' has no (valid) response schema.",
            registry,
            "You can use the fill_empty_responses option to create a placeholder schema.",
        )
        return None

    if operation_id in registry.operations:
        handle_warning(
            "DUPLICATE_OPERATIONID",
            f"Multiple operations have the operationId '{operation_id}'.",
            registry,
        )
        return None

    # definitions are only created for operations that are kept
    payload = tools.get_request_schema_and_names(path, method, doc)
    payload_definition = None
    if payload:
        payload_definition = create_data_def(payload["names"], payload["schema"], True, registry, doc)

    links = tools.get_endpoint_links(path, method, doc, status_code)
    response_definition = create_data_def(
        response["names"], response["schema"], False, registry, doc, links=links
    )

    security_requirements = []
    if options.viewer:
        security_requirements = tools.get_security_requirements(path, method, registry.security, doc)

    operation_type = OperationType.QUERY if method.lower() == "get" else OperationType.MUTATION
    selected = options.lookup(
        options.select_query_or_mutation_field, doc.get("info", {}).get("title", ""), path, method
    )
    if selected:
        operation_type = OperationType(selected)

    logger.debug("Processed operation '%s' as %s", operation_string, operation_type.value)
    return Operation(
        operation_id=operation_id,
        operation_string=operation_string,
        description=description,
        path=path,
        method=method.lower(),
        parameters=tools.get_parameters(path, method, doc),
        payload_content_type=payload.get("content_type"),
        payload_definition=payload_definition,
        payload_required=payload.get("required", False),
        response_content_type=response["content_type"],
        response_definition=response_definition,
        status_code=status_code,
        security_requirements=security_requirements,
        servers=tools.get_servers(path, method, doc),
        operation_type=operation_type,
        in_viewer=bool(security_requirements) and options.viewer,
        document=doc,
    )


def get_processed_security_schemes(doc: dict, registry: Registry) -> dict[str, ProcessedSecurityScheme]:
    """Derive the credentials each supported security scheme needs."""
    result = {}
    for key, scheme in tools.get_security_schemes(doc).items():
        scheme_type = scheme.get("type")
        parameters: dict[str, str] = {}

        if scheme_type == "apiKey":
            parameters = {"apiKey": sanitize(f"{key}_apiKey")}
        elif scheme_type == "http" and str(scheme.get("scheme", "")).lower() == "basic":
            parameters = {"username": sanitize(f"{key}_username"), "password": sanitize(f"{key}_password")}
        elif scheme_type in ("http", "openIdConnect"):
            handle_warning(
                "UNSUPPORTED_HTTP_SECURITY_SCHEME",
                f"Security scheme '{key}' of type '{scheme.get('scheme') or scheme_type}' is not supported.",
                registry,
            )
            continue
        elif scheme_type == "oauth2":
            handle_warning(
                "OAUTH_SECURITY_SCHEME",
                f"OAuth security scheme '{key}' is handled with an access token from the context.",
                registry,
            )
            continue
        else:
            handle_warning("INVALID_OAS", f"Security scheme '{key}' has an unknown type '{scheme_type}'.", registry)
            continue

        result[key] = ProcessedSecurityScheme(
            raw_name=key,
            definition=scheme,
            document_title=doc.get("info", {}).get("title", ""),
            parameters=parameters,
        )
    return result
