"""Compile data definitions into GraphQL types, fields and arguments."""

import logging
from typing import TYPE_CHECKING, Any

from graphql import (
    GraphQLArgument,
    GraphQLBoolean,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLFloat,
    GraphQLID,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInt,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLString,
    GraphQLUnionType,
)

from oas_graphql.definitions import MAX_DEPTH, create_data_def
from oas_graphql.errors import RecursionBudgetError, handle_warning
from oas_graphql.graphql_tools import GraphQLJSON
from oas_graphql.naming import CaseStyle, sanitize, sanitize_and_store
from oas_graphql.oas import tools
from oas_graphql.oas.base import DataDefinition, DefinitionKind, Link, Operation, Param
from oas_graphql.resolver import get_resolver

if TYPE_CHECKING:
    from oas_graphql.preprocessor import Registry

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available."

SCALARS = {
    DefinitionKind.STRING: GraphQLString,
    DefinitionKind.INTEGER: GraphQLInt,
    DefinitionKind.NUMBER: GraphQLFloat,
    DefinitionKind.BOOLEAN: GraphQLBoolean,
    DefinitionKind.ID: GraphQLID,
    DefinitionKind.JSON: GraphQLJSON,
}


def get_graphql_type(
    definition: DataDefinition,
    registry: "Registry",
    operation: Operation | None = None,
    depth: int = 0,
    is_input: bool = False,
) -> Any:
    """Return the (input) type for ``definition``, creating it on first use.

    Object fields are created lazily by graphql-core, so a definition that
    refers back to itself gets the type that is being created.
    """
    if depth > MAX_DEPTH:
        raise RecursionBudgetError(
            f"Type nesting deeper than {MAX_DEPTH} levels while creating '{definition.output_type_name}'"
        )

    kind = definition.kind
    if kind is DefinitionKind.OBJECT:
        return _object_type(definition, registry, operation, depth, is_input)
    if kind is DefinitionKind.ARRAY:
        item_type = get_graphql_type(definition.sub_definitions, registry, operation, depth + 1, is_input)
        return GraphQLList(item_type)
    if kind is DefinitionKind.UNION:
        if is_input:
            # GraphQL has no input unions
            return GraphQLJSON
        return _union_type(definition, registry, operation, depth)
    if kind is DefinitionKind.ENUM:
        return _enum_type(definition)
    return SCALARS[kind]


def _object_type(
    definition: DataDefinition, registry: "Registry", operation: Operation | None, depth: int, is_input: bool
) -> Any:
    cached = definition.input_type if is_input else definition.output_type
    if cached is not None:
        return cached

    if not definition.sub_definitions:
        handle_warning(
            "OBJECT_MISSING_PROPERTIES",
            f"Schema '{definition.output_type_name}' is an object without properties.",
            registry,
        )
        compiled = GraphQLString
    elif is_input:
        compiled = GraphQLInputObjectType(
            name=definition.input_type_name,
            description=definition.description,
            fields=lambda: create_fields(definition, registry, operation, depth, True),
        )
    else:
        compiled = GraphQLObjectType(
            name=definition.output_type_name,
            description=definition.description,
            fields=lambda: create_fields(definition, registry, operation, depth, False),
        )
    logger.debug("Created type '%s'", getattr(compiled, "name", definition.output_type_name))

    if is_input:
        definition.input_type = compiled
    else:
        definition.output_type = compiled
    return compiled


def _union_type(
    definition: DataDefinition, registry: "Registry", operation: Operation | None, depth: int
) -> Any:
    if definition.output_type is not None:
        return definition.output_type

    member_types = []
    for member in definition.sub_definitions:
        member_type = get_graphql_type(member, registry, operation, depth + 1)
        if member_type not in member_types:
            member_types.append(member_type)

    if not all(isinstance(member_type, GraphQLObjectType) for member_type in member_types):
        handle_warning(
            "UNION_MEMBER_NON_OBJECT",
            f"Union '{definition.output_type_name}' has members that are not object types.",
            registry,
        )
        definition.output_type = GraphQLJSON
        return GraphQLJSON

    members = definition.sub_definitions

    def resolve_type(value: Any, info: Any, abstract_type: Any) -> str | None:
        if not isinstance(value, dict):
            return None

        # prefer members declaring every key of the value, then the largest overlap
        def score(member: DataDefinition) -> tuple[bool, int]:
            properties = {sanitize(name) for name in member.sub_definitions}
            return value.keys() <= properties, len(value.keys() & properties)

        return max(members, key=score).output_type_name

    definition.output_type = GraphQLUnionType(
        name=definition.output_type_name,
        types=member_types,
        description=definition.description,
        resolve_type=resolve_type,
    )
    return definition.output_type


def _enum_type(definition: DataDefinition) -> GraphQLEnumType:
    if definition.output_type is not None:
        return definition.output_type

    values = {}
    for value in definition.schema.get("enum", []):
        if value is None:
            continue
        name = sanitize(str(value), CaseStyle.ALL_CAPS)
        values.setdefault(name, GraphQLEnumValue(value))

    definition.output_type = GraphQLEnumType(
        name=definition.output_type_name,
        values=values,
        description=definition.description,
    )
    return definition.output_type


def create_fields(
    definition: DataDefinition,
    registry: "Registry",
    operation: Operation | None,
    depth: int,
    is_input: bool,
) -> dict[str, Any]:
    """Fields of an object type, plus one field per link when it is an operation response."""
    fields: dict[str, Any] = {}
    for prop_name, prop_definition in definition.sub_definitions.items():
        field_type = get_graphql_type(prop_definition, registry, operation, depth + 1, is_input)
        field_name = sanitize_and_store(prop_name, registry.name_map)
        if field_name in fields:
            handle_warning(
                "DUPLICATE_FIELD_NAME",
                f"Properties of '{definition.output_type_name}' collide on the field name '{field_name}'.",
                registry,
            )
            continue

        description = prop_definition.description or NO_DESCRIPTION
        if is_input:
            if prop_name in definition.required:
                field_type = GraphQLNonNull(field_type)
            fields[field_name] = GraphQLInputField(field_type, description=description)
        else:
            fields[field_name] = GraphQLField(field_type, description=description)

    owner = None if is_input else _link_owner(definition, operation, registry)
    if owner is not None:
        for link_key, link in definition.links.items():
            if link_key in fields:
                handle_warning(
                    "LINK_NAME_COLLISION",
                    f"Link '{link_key}' of '{owner.operation_string}' collides with a field "
                    f"of '{definition.output_type_name}'.",
                    registry,
                )
                continue
            link_field = _link_field(link_key, link, owner, registry)
            if link_field is not None:
                fields[link_key] = link_field

    return dict(sorted(fields.items()))


def _link_owner(
    definition: DataDefinition, operation: Operation | None, registry: "Registry"
) -> Operation | None:
    """The operation whose response is ``definition``, wherever the type was first compiled."""
    if not definition.links:
        return None
    if operation is not None and operation.response_definition is definition:
        return operation
    for candidate in registry.operations.values():
        if candidate.response_definition is definition:
            return candidate
    return None


def _link_field(link_key: str, link: Link, operation: Operation, registry: "Registry") -> GraphQLField | None:
    if link.operation_id is not None:
        linked_id = link.operation_id
    elif link.operation_ref is not None:
        linked_id = link_op_ref_to_op_id(link, link_key, operation, registry)
        if linked_id is None:
            return None
    else:
        handle_warning(
            "UNRESOLVABLE_LINK",
            f"Link '{link_key}' of '{operation.operation_string}' has neither operationId nor operationRef.",
            registry,
        )
        return None

    linked = registry.operations.get(linked_id)
    if linked is None:
        handle_warning(
            "UNRESOLVABLE_LINK",
            f"Link '{link_key}' of '{operation.operation_string}' references the unknown "
            f"operation '{linked_id}'.",
            registry,
        )
        return None

    dynamic_params = [param for param in linked.parameters if param.name not in link.parameters]
    description = link.description or NO_DESCRIPTION
    if registry.options.equivalent_to_messages:
        description += f"\n\nEquivalent to {linked.operation_string}"

    logger.debug("Created link '%s' from %s to %s", link_key, operation.operation_string, linked.operation_string)
    return GraphQLField(
        get_graphql_type(linked.response_definition, registry, linked),
        args=get_args(dynamic_params, linked, registry),
        resolve=get_resolver(linked, registry, args_from_link=link.parameters),
        description=description,
    )


def link_op_ref_to_op_id(link: Link, link_key: str, operation: Operation, registry: "Registry") -> str | None:
    """Find the operationId an ``operationRef`` such as ``#/paths/~1users~1{id}/get`` points to."""
    operation_ref = link.operation_ref

    def unresolvable(reason: str) -> None:
        handle_warning(
            "UNRESOLVABLE_LINK",
            f"Link '{link_key}' of '{operation.operation_string}' has the operationRef "
            f"'{operation_ref}', which {reason}.",
            registry,
        )

    first = operation_ref.find("#/paths/")
    if first == -1:
        return unresolvable("does not contain '#/paths/'")
    if first != operation_ref.rfind("#/paths/"):
        handle_warning(
            "AMBIGUOUS_LINK",
            f"Link '{link_key}' of '{operation.operation_string}' has the operationRef "
            f"'{operation_ref}', which contains '#/paths/' more than once.",
            registry,
        )
        return None

    location = operation_ref[:first]
    relative = operation_ref[first + len("#/paths/"):]
    pivot = relative.rfind("/")
    if pivot == -1 or pivot == len(relative) - 1:
        return unresolvable("does not end with an HTTP method")
    link_path = relative[:pivot].replace("~1", "/").replace("~0", "~")
    link_method = relative[pivot + 1:]
    if not tools.is_operation(link_method):
        return unresolvable(f"has the invalid HTTP method '{link_method}'")

    doc = operation.document if not location else _document_from_location(location, registry)
    if doc is None:
        return unresolvable("references a document that was not provided")

    linked_op = ((doc.get("paths") or {}).get(link_path) or {}).get(link_method) or {}
    linked_id = linked_op.get("operationId") or tools.generate_operation_id(link_method, link_path)
    if linked_id not in registry.operations:
        return unresolvable(f"points to the unknown operation '{linked_id}'")
    return linked_id


def _document_from_location(location: str, registry: "Registry") -> dict | None:
    """Match the part of an operationRef before '#' to a document title or server."""
    location = location.rstrip("/")
    doc = registry.document_by_title(location)
    if doc is not None:
        return doc
    for candidate in registry.documents:
        for server in candidate.get("servers") or []:
            if str(server.get("url", "")).rstrip("/") == location:
                return candidate
    return None


def get_args(
    parameters: list[Param],
    operation: Operation,
    registry: "Registry",
    payload_definition: DataDefinition | None = None,
) -> dict[str, GraphQLArgument]:
    """Arguments of the field for ``operation``."""
    options = registry.options
    args: dict[str, GraphQLArgument] = {}

    for param in parameters:
        if not param.name:
            handle_warning(
                "UNNAMED_PARAMETER",
                f"A parameter of '{operation.operation_string}' has no name.",
                registry,
            )
            continue
        if param.name in options.headers or param.name in options.query_params:
            continue

        schema = param.param_schema
        if schema is None and param.content:
            if tools.JSON_CONTENT_TYPE in param.content:
                schema = (param.content[tools.JSON_CONTENT_TYPE] or {}).get("schema")
            else:
                handle_warning(
                    "NON_APPLICATION_JSON_SCHEMA",
                    f"Parameter '{param.name}' of '{operation.operation_string}' has no "
                    "application/json content.",
                    registry,
                )
                continue
        if schema is None:
            handle_warning(
                "INVALID_OAS",
                f"Parameter '{param.name}' of '{operation.operation_string}' has neither schema nor content.",
                registry,
            )
            continue

        param_definition = create_data_def({"from_ref": param.name}, schema, True, registry, operation.document)
        param_type = get_graphql_type(param_definition, registry, operation, is_input=True)
        has_default = "default" in tools.deref(schema, operation.document)
        if param.required and not has_default:
            param_type = GraphQLNonNull(param_type)
        args[sanitize(param.name)] = GraphQLArgument(param_type, description=param.description or None)

    if options.add_limit_argument and _returns_list_of_objects(operation):
        if "limit" in args:
            handle_warning(
                "LIMIT_ARGUMENT_NAME_COLLISION",
                f"'{operation.operation_string}' already has a 'limit' argument.",
                registry,
            )
        else:
            args["limit"] = GraphQLArgument(
                GraphQLInt,
                description="Auto-generated argument that limits the size of the returned list of objects",
            )

    if payload_definition is not None:
        payload_type = get_graphql_type(payload_definition, registry, operation, is_input=True)
        if operation.payload_required:
            payload_type = GraphQLNonNull(payload_type)
        args[sanitize(payload_definition.input_type_name)] = GraphQLArgument(
            payload_type, description=payload_definition.description or "Request body of the operation"
        )

    return dict(sorted(args.items()))


def _returns_list_of_objects(operation: Operation) -> bool:
    definition = operation.response_definition
    return definition.kind is DefinitionKind.ARRAY and definition.sub_definitions.kind in (
        DefinitionKind.OBJECT,
        DefinitionKind.ARRAY,
    )
