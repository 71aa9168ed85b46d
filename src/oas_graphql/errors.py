"""Exceptions, translation warnings and the translation report."""

import logging
from typing import Any, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OasGraphQLError(Exception):
    """Base class for all errors raised by oas-graphql."""


class TranslationError(OasGraphQLError):
    """The schema cannot be built."""


class UnresolvableReferenceError(TranslationError):
    pass


class RecursionBudgetError(TranslationError):
    pass


class StrictModeError(TranslationError):
    """A warning was raised while translating in strict mode."""


class RequestError(OasGraphQLError):
    """A resolver failed. Scoped to the field being resolved."""


class RuntimeExpressionError(RequestError):
    pass


class AuthenticationError(RequestError):
    pass


class LimitArgumentError(RequestError):
    pass


class ResponseError(RequestError):
    """The REST API answered with something that cannot be returned.

    ``extensions`` is picked up by graphql-core and reported next to the
    error message in the GraphQL response.
    """

    def __init__(self, message: str, extensions: dict[str, Any] | None = None):
        super().__init__(message)
        self.extensions = extensions


MITIGATIONS = {
    "INVALID_OAS": "Ignore the issue and continue translation.",
    "UNNAMED_PARAMETER": "Ignore parameter.",
    "MULTIPLE_RESPONSES": "Select first response object with successful status code (200-299).",
    "MISSING_RESPONSE_SCHEMA": "Ignore operation.",
    "DUPLICATE_FIELD_NAME": "Ignore field and maintain preexisting field.",
    "DUPLICATE_LINK_KEY": "Ignore link and maintain preexisting link.",
    "UNSUPPORTED_HTTP_SECURITY_SCHEME": "Ignore security scheme.",
    "NON_APPLICATION_JSON_SCHEMA": "Ignore schema.",
    "OBJECT_MISSING_PROPERTIES": "The (sub-)object will be stringified.",
    "UNSUPPORTED_JSON_SCHEMA_KEYWORD": "The schema will be typed as arbitrary JSON.",
    "UNION_MEMBER_NON_OBJECT": "The schema will be typed as arbitrary JSON.",
    "UNRESOLVABLE_LINK": "Ignore link.",
    "AMBIGUOUS_LINK": "Ignore link.",
    "LINK_NAME_COLLISION": "Ignore link and maintain the field.",
    "MULTIPLE_OAS_SAME_TITLE": "Ignore issue and continue.",
    "DUPLICATE_OPERATIONID": "Ignore operation and maintain preexisting operation.",
    "DUPLICATE_SECURITY_SCHEME": "Ignore security scheme and maintain preexisting scheme.",
    "CUSTOM_RESOLVER_UNKNOWN_OAS": "Ignore this set of custom resolvers.",
    "CUSTOM_RESOLVER_UNKNOWN_PATH_METHOD": "Ignore this set of custom resolvers.",
    "LIMIT_ARGUMENT_NAME_COLLISION": "Do not override existing 'limit' argument.",
    "OAUTH_SECURITY_SCHEME": "Ignore security scheme. Pass an access token in the context instead.",
}


class TranslationWarning(BaseModel):
    type: str
    message: str
    mitigation: str


class Report(BaseModel):
    warnings: list[TranslationWarning] = Field(default_factory=list)
    num_ops: int = 0
    num_ops_query: int = 0
    num_ops_mutation: int = 0
    num_queries_created: int = 0
    num_mutations_created: int = 0


class _Reporting(Protocol):
    report: Report

    @property
    def strict(self) -> bool: ...


def handle_warning(
    type_key: str,
    message: str,
    registry: _Reporting,
    mitigation_addendum: str | None = None,
) -> None:
    """Record a recoverable problem, or raise it when translating strictly."""
    mitigation = MITIGATIONS[type_key]
    if mitigation_addendum:
        mitigation = f"{mitigation} {mitigation_addendum}"

    if registry.strict:
        raise StrictModeError(f"{type_key} - {message}")

    logger.warning("%s - %s %s", type_key, message, mitigation)
    registry.report.warnings.append(
        TranslationWarning(type=type_key, message=message, mitigation=mitigation)
    )
