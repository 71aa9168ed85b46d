"""Canonical models produced by preprocessing an OpenAPI document.

Operations, parameters and links are pydantic models. DataDefinition is a
plain dataclass: definitions form a cyclic graph and are compared by
identity, never by value.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class OperationType(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


class DefinitionKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    UNION = "union"
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ID = "id"
    JSON = "json"


class Param(BaseModel):
    """A single operation parameter (query, path, header, or cookie)."""

    name: str | None
    location: str | None  # query / path / header / cookie
    required: bool = False
    description: str = ""
    param_schema: dict | None = None
    content: dict | None = None

    @classmethod
    def from_oas(cls, obj: dict) -> "Param":
        return cls(
            name=obj.get("name"),
            location=obj.get("in"),
            required=bool(obj.get("required", False)),
            description=obj.get("description") or "",
            param_schema=obj.get("schema"),
            content=obj.get("content"),
        )


class Link(BaseModel):
    """A link object declared on an operation response."""

    operation_id: str | None = None
    operation_ref: str | None = None
    parameters: dict[str, Any] = {}
    description: str | None = None

    @classmethod
    def from_oas(cls, obj: dict) -> "Link":
        return cls(
            operation_id=obj.get("operationId"),
            operation_ref=obj.get("operationRef"),
            parameters=obj.get("parameters") or {},
            description=obj.get("description"),
        )


@dataclass(eq=False)
class DataDefinition:
    """A deduplicated node of the type graph.

    ``sub_definitions`` holds a dict of property name to definition for
    objects, the item definition for arrays and the member definitions for
    unions. It is filled after the definition has been registered, which is
    what stops self-referencing schemas from recursing forever.
    """

    preferred_name: str
    schema: dict
    kind: DefinitionKind
    output_type_name: str
    input_type_name: str
    required: list[str] = field(default_factory=list)
    sub_definitions: "dict[str, DataDefinition] | DataDefinition | list[DataDefinition] | None" = None
    links: dict[str, Link] = field(default_factory=dict)
    # compiled GraphQL types, created on first use
    output_type: Any = None
    input_type: Any = None

    @property
    def description(self) -> str | None:
        return self.schema.get("description")


class ProcessedSecurityScheme(BaseModel):
    """A security scheme together with the credentials a viewer asks for."""

    raw_name: str
    definition: dict
    # viewer argument name -> scheme-qualified credential name
    parameters: dict[str, str] = {}
    document_title: str = ""


class Operation(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    operation_id: str
    operation_string: str
    description: str
    path: str
    method: str
    parameters: list[Param]
    payload_content_type: str | None = None
    payload_definition: DataDefinition | None = None
    payload_required: bool = False
    response_content_type: str | None = None
    response_definition: DataDefinition
    status_code: str | None = None
    security_requirements: list[str] = []
    servers: list[dict] = []
    operation_type: OperationType
    in_viewer: bool = False
    document: dict

    @property
    def title(self) -> str:
        return self.document.get("info", {}).get("title", "")
