"""Build the deduplicated graph of data definitions from JSON schemas.

Every schema met while translating (responses, payloads, parameters and
everything nested in them) is turned into a DataDefinition. Definitions
are shared: a schema with the same preferred name and the same content as
an existing definition reuses it, which is also what ends the recursion
for self-referencing schemas.
"""

import logging
from typing import TYPE_CHECKING, Any

from oas_graphql.errors import RecursionBudgetError, handle_warning
from oas_graphql.naming import CaseStyle, sanitize
from oas_graphql.oas.base import DataDefinition, DefinitionKind, Link
from oas_graphql.oas.tools import deref, get_schema_kind, ref_name

if TYPE_CHECKING:
    from oas_graphql.preprocessor import Registry

logger = logging.getLogger(__name__)

MAX_DEPTH = 50
NAME_SOURCES = ("preferred", "from_ref", "from_schema", "from_path")


def create_data_def(
    names: dict[str, str],
    schema: dict,
    is_input: bool,
    registry: "Registry",
    document: dict,
    links: dict[str, Link] | None = None,
    depth: int = 0,
) -> DataDefinition:
    """Return the definition for ``schema``, creating it if it is new.

    ``names`` holds name hints keyed by source (``preferred``, ``from_ref``,
    ``from_schema``, ``from_path``). Hints missing for the reference and the
    title are taken from the schema itself.
    """
    if depth > MAX_DEPTH:
        raise RecursionBudgetError(
            f"Schema nesting deeper than {MAX_DEPTH} levels while creating '{_first_name(names)}'"
        )

    names = {key: value for key, value in names.items() if isinstance(value, str)}
    if ref_name(schema):
        names.setdefault("from_ref", ref_name(schema))
    schema = deref(schema, document)
    if not isinstance(schema, dict):
        schema = {}
    if isinstance(schema.get("title"), str):
        names.setdefault("from_schema", schema["title"])

    preferred_name = sanitize(_first_name(names))
    links = {sanitize(key): link for key, link in (links or {}).items()}

    existing = registry.find_definition(preferred_name, schema)
    if existing is not None:
        _merge_links(existing, links, registry)
        logger.debug("Reusing definition '%s' for '%s'", existing.output_type_name, preferred_name)
        return existing

    name = _allocate_name(names, registry.used_type_names)
    output_type_name = sanitize(name, CaseStyle.PASCAL_CASE)
    input_type_name = output_type_name + "Input"

    kind, merged = _classify(schema, document, registry)
    definition = DataDefinition(
        preferred_name=preferred_name,
        schema=schema,
        kind=kind,
        output_type_name=output_type_name,
        input_type_name=input_type_name,
        required=list(merged.get("required") or []),
        links=links,
    )
    # registered before the children so that references back to it resolve
    registry.add_definition(definition)
    logger.debug("Created definition '%s' (%s)", output_type_name, kind.value)

    if kind is DefinitionKind.OBJECT:
        definition.sub_definitions = {}
        for prop_name, prop_schema in (merged.get("properties") or {}).items():
            definition.sub_definitions[prop_name] = create_data_def(
                {"from_ref": ref_name(prop_schema) or prop_name},
                prop_schema,
                is_input,
                registry,
                document,
                depth=depth + 1,
            )
    elif kind is DefinitionKind.ARRAY:
        items = merged.get("items")
        definition.sub_definitions = create_data_def(
            {"from_ref": ref_name(items) or f"{name}ListItem"},
            items if isinstance(items, dict) else {},
            is_input,
            registry,
            document,
            depth=depth + 1,
        )
    elif kind is DefinitionKind.UNION:
        definition.sub_definitions = [
            create_data_def(
                {"from_ref": ref_name(member), "from_path": f"{name}Member"},
                member,
                is_input,
                registry,
                document,
                depth=depth + 1,
            )
            for member in merged["oneOf"]
        ]

    return definition


def _first_name(names: dict[str, str]) -> str:
    for source in NAME_SOURCES:
        if names.get(source):
            return names[source]
    return "PlaceholderName"


def _allocate_name(names: dict[str, str], used: set[str]) -> str:
    """Pick the first name hint whose type names are still free.

    If every hint is taken, the best one gets a numeric suffix.
    """

    def is_free(candidate: str) -> bool:
        type_name = sanitize(candidate, CaseStyle.PASCAL_CASE)
        return type_name not in used and type_name + "Input" not in used

    candidates = [names[source] for source in NAME_SOURCES if names.get(source)]
    for candidate in candidates:
        if is_free(candidate):
            return candidate

    base = candidates[0] if candidates else "PlaceholderName"
    suffix = 2
    while not is_free(f"{base}{suffix}"):
        suffix += 1
    return f"{base}{suffix}"


def _merge_links(definition: DataDefinition, links: dict[str, Link], registry: "Registry") -> None:
    for key, link in links.items():
        existing = definition.links.get(key)
        if existing is None:
            definition.links[key] = link
        elif existing != link:
            handle_warning(
                "DUPLICATE_LINK_KEY",
                f"Multiple links with name '{key}' exist for '{definition.output_type_name}' "
                "with different definitions.",
                registry,
            )


def _classify(schema: dict, document: dict, registry: "Registry") -> tuple[DefinitionKind, dict]:
    """Determine the kind of a schema after merging its combining keywords.

    Returns the kind and the schema the children are read from.
    """
    if isinstance(schema.get("enum"), list):
        return DefinitionKind.ENUM, schema

    merged = _merge_all_of(schema, document, registry, frozenset())

    if "oneOf" in merged and "anyOf" in merged:
        handle_warning(
            "UNSUPPORTED_JSON_SCHEMA_KEYWORD",
            f"Schema '{_describe(schema)}' contains both 'oneOf' and 'anyOf'.",
            registry,
        )
        return DefinitionKind.JSON, merged

    if "oneOf" in merged:
        members = [_merge_all_of(deref(m, document), document, registry, frozenset()) for m in merged["oneOf"]]
        if members and all(get_schema_kind(m, registry) is DefinitionKind.OBJECT for m in members):
            return DefinitionKind.UNION, merged
        handle_warning(
            "UNION_MEMBER_NON_OBJECT",
            f"Schema '{_describe(schema)}' has 'oneOf' members that are not objects.",
            registry,
        )
        return DefinitionKind.JSON, merged

    if "anyOf" in merged:
        any_of = _merge_any_of(merged, document, registry)
        if any_of is None:
            handle_warning(
                "UNION_MEMBER_NON_OBJECT",
                f"Schema '{_describe(schema)}' has 'anyOf' members that are not objects.",
                registry,
            )
            return DefinitionKind.JSON, merged
        return DefinitionKind.OBJECT, any_of

    kind = get_schema_kind(merged, registry)
    if kind is None:
        handle_warning(
            "UNSUPPORTED_JSON_SCHEMA_KEYWORD",
            f"Could not determine the type of schema '{_describe(schema)}'.",
            registry,
        )
        return DefinitionKind.JSON, merged
    return kind, merged


def _merge_all_of(schema: dict, document: dict, registry: "Registry", seen: frozenset) -> dict:
    """Fold ``allOf`` members into one schema.

    Properties and required lists are unioned. A property declared again
    with a different schema keeps its first declaration.
    """
    if not isinstance(schema.get("allOf"), list) or id(schema) in seen:
        return schema
    seen = seen | {id(schema)}

    merged = {key: value for key, value in schema.items() if key != "allOf"}
    properties = dict(merged.get("properties") or {})
    required = list(merged.get("required") or [])

    for member in schema["allOf"]:
        member = _merge_all_of(deref(member, document), document, registry, seen)
        for key in ("type", "description", "items", "enum", "oneOf", "anyOf", "additionalProperties"):
            if key in member and key not in merged:
                merged[key] = member[key]
        for prop_name, prop_schema in (member.get("properties") or {}).items():
            if prop_name not in properties:
                properties[prop_name] = prop_schema
            elif deref(properties[prop_name], document) != deref(prop_schema, document):
                handle_warning(
                    "DUPLICATE_FIELD_NAME",
                    f"Property '{prop_name}' is declared differently by several 'allOf' members "
                    f"of '{_describe(schema)}'.",
                    registry,
                )
        required.extend(name for name in member.get("required") or [] if name not in required)

    if properties:
        merged["properties"] = properties
        merged.setdefault("type", "object")
    if required:
        merged["required"] = required
    return merged


# arbitrary JSON, used for properties declared differently by anyOf members
_OPAQUE_PROPERTY = {"type": "object", "additionalProperties": {}}


def _merge_any_of(schema: dict, document: dict, registry: "Registry") -> dict | None:
    """Fold object-typed ``anyOf`` members into one object schema.

    Returns None if a member is not an object. Properties the members
    disagree on are typed as arbitrary JSON.
    """
    members = [_merge_all_of(deref(m, document), document, registry, frozenset()) for m in schema["anyOf"]]
    if not members or not all(get_schema_kind(m, registry) is DefinitionKind.OBJECT for m in members):
        return None

    merged = {key: value for key, value in schema.items() if key != "anyOf"}
    properties = dict(merged.get("properties") or {})
    conflicts = set()
    for member in members:
        for prop_name, prop_schema in (member.get("properties") or {}).items():
            if prop_name not in properties:
                properties[prop_name] = prop_schema
            elif deref(properties[prop_name], document) != deref(prop_schema, document):
                conflicts.add(prop_name)

    for prop_name in sorted(conflicts):
        handle_warning(
            "UNSUPPORTED_JSON_SCHEMA_KEYWORD",
            f"Property '{prop_name}' is declared differently by several 'anyOf' members "
            f"of '{_describe(schema)}'.",
            registry,
        )
        properties[prop_name] = dict(_OPAQUE_PROPERTY)

    merged["type"] = "object"
    merged["properties"] = properties
    return merged


def _describe(schema: dict) -> Any:
    return schema.get("title") or schema.get("description") or sorted(schema)
