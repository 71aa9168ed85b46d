"""GraphQL types that do not come from a schema."""

from typing import Any

from graphql import GraphQLField, GraphQLObjectType, GraphQLScalarType, GraphQLString
from graphql.language import ValueNode
from graphql.utilities import value_from_ast_untyped


def _parse_literal(value_node: ValueNode, variables: dict[str, Any] | None = None) -> Any:
    return value_from_ast_untyped(value_node, variables)


GraphQLJSON = GraphQLScalarType(
    name="JSON",
    description="Arbitrary JSON value",
    serialize=lambda value: value,
    parse_value=lambda value: value,
    parse_literal=_parse_literal,
)


def get_empty_object_type(name: str) -> GraphQLObjectType:
    """An object type for a root without fields, which GraphQL does not allow."""
    return GraphQLObjectType(
        name=name,
        description="Placeholder object",
        fields={
            "message": GraphQLField(
                GraphQLString,
                description="Placeholder field",
                resolve=lambda root, info: f"{name} has no fields",
            )
        },
    )
