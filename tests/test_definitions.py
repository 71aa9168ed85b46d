import pytest

from oas_graphql.definitions import MAX_DEPTH, create_data_def
from oas_graphql.errors import RecursionBudgetError, StrictModeError, UnresolvableReferenceError
from oas_graphql.oas.base import DefinitionKind, Link
from oas_graphql.options import Options
from oas_graphql.preprocessor import Registry

DOC = {
    "openapi": "3.0.0",
    "info": {"title": "Defs", "version": "1"},
    "paths": {},
    "components": {
        "schemas": {
            "User": {
                "type": "object",
                "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
            },
            "Node": {
                "type": "object",
                "properties": {"value": {"type": "integer"}, "child": {"$ref": "#/components/schemas/Node"}},
            },
            "Base": {
                "type": "object",
                "required": ["id"],
                "properties": {"id": {"type": "string"}},
            },
            "Cat": {"type": "object", "properties": {"meow": {"type": "boolean"}}},
            "Dog": {"type": "object", "properties": {"bark": {"type": "boolean"}}},
        }
    },
}


def _registry(**options) -> Registry:
    return Registry(options=Options(**options), documents=[DOC])


def _ref(name: str) -> dict:
    return {"$ref": f"#/components/schemas/{name}"}


def _warning_types(registry: Registry) -> list[str]:
    return [w.type for w in registry.report.warnings]


class TestDeduplication:
    def test_same_name_and_schema_share_definition(self):
        registry = _registry()
        first = create_data_def({}, _ref("User"), False, registry, DOC)
        second = create_data_def({"from_path": "Users"}, _ref("User"), True, registry, DOC)
        assert first is second
        assert first.output_type_name == "User"
        assert first.input_type_name == "UserInput"

    def test_different_schema_gets_suffixed_name(self):
        registry = _registry()
        first = create_data_def({"from_ref": "User"}, {"properties": {"a": {"type": "string"}}}, False, registry, DOC)
        second = create_data_def({"from_ref": "User"}, {"properties": {"b": {"type": "string"}}}, False, registry, DOC)
        assert first is not second
        assert first.output_type_name == "User"
        assert second.output_type_name == "User2"

    def test_next_name_hint_is_tried_before_suffix(self):
        registry = _registry()
        create_data_def({"from_ref": "User"}, {"properties": {"a": {"type": "string"}}}, False, registry, DOC)
        other = create_data_def(
            {"from_ref": "User", "from_path": "Accounts"}, {"properties": {"b": {"type": "string"}}}, False, registry, DOC
        )
        assert other.output_type_name == "Accounts"

    def test_root_type_names_are_reserved(self):
        registry = _registry()
        definition = create_data_def({"from_path": "Query"}, {"properties": {"a": {"type": "string"}}}, False, registry, DOC)
        assert definition.output_type_name == "Query2"

    def test_self_reference_ends_in_same_definition(self):
        registry = _registry()
        node = create_data_def({}, _ref("Node"), False, registry, DOC)
        assert node.kind is DefinitionKind.OBJECT
        assert node.sub_definitions["child"] is node
        assert node.sub_definitions["value"].kind is DefinitionKind.INTEGER

    def test_conflicting_links_warn(self):
        registry = _registry()
        create_data_def({}, _ref("User"), False, registry, DOC, links={"friend": Link(operation_id="a")})
        definition = create_data_def({}, _ref("User"), False, registry, DOC, links={"friend": Link(operation_id="b")})
        assert definition.links["friend"].operation_id == "a"
        assert _warning_types(registry) == ["DUPLICATE_LINK_KEY"]

    def test_links_are_merged(self):
        registry = _registry()
        create_data_def({}, _ref("User"), False, registry, DOC, links={"friend": Link(operation_id="a")})
        definition = create_data_def({}, _ref("User"), False, registry, DOC, links={"boss": Link(operation_id="b")})
        assert set(definition.links) == {"friend", "boss"}


class TestKinds:
    @pytest.mark.parametrize(
        ("schema", "kind"),
        [
            ({"type": "string"}, DefinitionKind.STRING),
            ({"type": "integer"}, DefinitionKind.INTEGER),
            ({"type": "integer", "format": "int64"}, DefinitionKind.NUMBER),
            ({"type": "number"}, DefinitionKind.NUMBER),
            ({"type": "boolean"}, DefinitionKind.BOOLEAN),
            ({"type": "string", "format": "uuid"}, DefinitionKind.ID),
            ({"type": "string", "enum": ["a", "b"]}, DefinitionKind.ENUM),
            ({"type": "object", "additionalProperties": {"type": "string"}}, DefinitionKind.JSON),
            ({"nullable": True}, DefinitionKind.STRING),
        ],
    )
    def test_scalar_and_enum_kinds(self, schema, kind):
        assert create_data_def({"from_path": "Thing"}, schema, False, _registry(), DOC).kind is kind

    def test_custom_id_formats(self):
        registry = _registry(id_formats=["customer-id"])
        definition = create_data_def({"from_path": "Id"}, {"type": "integer", "format": "customer-id"}, False, registry, DOC)
        assert definition.kind is DefinitionKind.ID

    def test_untyped_schema_is_json(self):
        registry = _registry()
        definition = create_data_def({"from_path": "Thing"}, {"not": {"type": "string"}}, False, registry, DOC)
        assert definition.kind is DefinitionKind.JSON
        assert _warning_types(registry) == ["UNSUPPORTED_JSON_SCHEMA_KEYWORD"]

    def test_array_items_are_named_after_the_list(self):
        schema = {"type": "array", "items": {"type": "object", "properties": {"a": {"type": "string"}}}}
        definition = create_data_def({"from_path": "Users"}, schema, False, _registry(), DOC)
        assert definition.kind is DefinitionKind.ARRAY
        assert definition.sub_definitions.output_type_name == "UsersListItem"

    def test_array_items_keep_ref_name(self):
        definition = create_data_def({"from_path": "Users"}, {"type": "array", "items": _ref("User")}, False, _registry(), DOC)
        assert definition.sub_definitions.output_type_name == "User"


class TestCombiningKeywords:
    def test_all_of_merges_properties_and_required(self):
        schema = {"allOf": [_ref("Base"), {"required": ["name"], "properties": {"name": {"type": "string"}}}]}
        definition = create_data_def({"from_path": "Pet"}, schema, True, _registry(), DOC)
        assert definition.kind is DefinitionKind.OBJECT
        assert set(definition.sub_definitions) == {"id", "name"}
        assert definition.required == ["id", "name"]

    def test_all_of_conflict_keeps_first(self):
        registry = _registry()
        schema = {"allOf": [_ref("Base"), {"properties": {"id": {"type": "integer"}}}]}
        definition = create_data_def({"from_path": "Pet"}, schema, False, registry, DOC)
        assert definition.sub_definitions["id"].kind is DefinitionKind.STRING
        assert _warning_types(registry) == ["DUPLICATE_FIELD_NAME"]

    def test_any_of_objects_are_merged(self):
        registry = _registry()
        schema = {"anyOf": [_ref("Cat"), _ref("Dog")]}
        definition = create_data_def({"from_path": "Pet"}, schema, False, registry, DOC)
        assert definition.kind is DefinitionKind.OBJECT
        assert set(definition.sub_definitions) == {"meow", "bark"}
        assert registry.report.warnings == []

    def test_any_of_conflicting_property_becomes_json(self):
        registry = _registry()
        schema = {
            "anyOf": [
                {"type": "object", "properties": {"size": {"type": "integer"}, "name": {"type": "string"}}},
                {"type": "object", "properties": {"size": {"type": "string"}}},
            ]
        }
        definition = create_data_def({"from_path": "Pet"}, schema, False, registry, DOC)
        assert definition.kind is DefinitionKind.OBJECT
        assert definition.sub_definitions["size"].kind is DefinitionKind.JSON
        assert definition.sub_definitions["name"].kind is DefinitionKind.STRING
        assert _warning_types(registry) == ["UNSUPPORTED_JSON_SCHEMA_KEYWORD"]

    def test_any_of_with_scalar_member_is_json(self):
        registry = _registry()
        schema = {"anyOf": [_ref("Cat"), {"type": "string"}]}
        definition = create_data_def({"from_path": "Pet"}, schema, False, registry, DOC)
        assert definition.kind is DefinitionKind.JSON
        assert _warning_types(registry) == ["UNION_MEMBER_NON_OBJECT"]

    def test_one_of_objects_form_a_union(self):
        schema = {"oneOf": [_ref("Cat"), _ref("Dog")]}
        definition = create_data_def({"from_path": "Pet"}, schema, False, _registry(), DOC)
        assert definition.kind is DefinitionKind.UNION
        assert [member.output_type_name for member in definition.sub_definitions] == ["Cat", "Dog"]

    def test_inline_one_of_members_are_named_after_the_union(self):
        schema = {
            "oneOf": [
                {"type": "object", "properties": {"a": {"type": "string"}}},
                {"type": "object", "properties": {"b": {"type": "string"}}},
            ]
        }
        definition = create_data_def({"from_path": "Pet"}, schema, False, _registry(), DOC)
        assert [member.output_type_name for member in definition.sub_definitions] == ["PetMember", "PetMember2"]

    def test_one_of_with_scalar_member_is_json(self):
        registry = _registry()
        schema = {"oneOf": [_ref("Cat"), {"type": "integer"}]}
        definition = create_data_def({"from_path": "Pet"}, schema, False, registry, DOC)
        assert definition.kind is DefinitionKind.JSON
        assert _warning_types(registry) == ["UNION_MEMBER_NON_OBJECT"]

    def test_strict_mode_raises(self):
        registry = _registry(strict=True)
        with pytest.raises(StrictModeError, match="UNION_MEMBER_NON_OBJECT"):
            create_data_def({"from_path": "Pet"}, {"oneOf": [{"type": "integer"}]}, False, registry, DOC)


class TestFailures:
    def test_unresolvable_reference(self):
        with pytest.raises(UnresolvableReferenceError, match="Missing"):
            create_data_def({}, _ref("Missing"), False, _registry(), DOC)

    def test_remote_reference(self):
        with pytest.raises(UnresolvableReferenceError):
            create_data_def({}, {"$ref": "other.yaml#/User"}, False, _registry(), DOC)

    def test_nesting_budget(self):
        schema = {"type": "string"}
        for _ in range(MAX_DEPTH + 5):
            schema = {"type": "object", "properties": {"next": schema}}
        with pytest.raises(RecursionBudgetError):
            create_data_def({"from_path": "Deep"}, schema, False, _registry(), DOC)
