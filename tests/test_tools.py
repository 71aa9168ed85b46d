import pytest

from oas_graphql.errors import UnresolvableReferenceError
from oas_graphql.oas import tools
from oas_graphql.options import Options
from oas_graphql.preprocessor import Registry

DOC = {
    "openapi": "3.0.0",
    "info": {"title": "Tools", "version": "1"},
    "servers": [{"url": "https://{region}.api.example/v2/", "variables": {"region": {"default": "eu"}}}],
    "paths": {
        "/users/{userId}/car": {
            "get": {
                "responses": {
                    "200": {"description": "ok", "content": {"application/json": {"schema": {"type": "string"}}}},
                    "201": {"description": "also ok"},
                    "404": {"description": "missing"},
                }
            },
            "x-internal": True,
        },
        "/forms": {
            "post": {
                "servers": [{"url": "http://forms.example"}],
                "requestBody": {
                    "content": {
                        "application/x-www-form-urlencoded": {
                            "schema": {"type": "object", "description": "Form", "properties": {"a": {"type": "string"}}}
                        }
                    }
                },
                "responses": {"default": {"description": "ok"}},
            }
        },
    },
    "components": {"schemas": {"a/b": {"type": "string"}, "Tilde~": {"type": "integer"}}},
}


def _registry() -> Registry:
    return Registry(options=Options(), documents=[DOC])


class TestReferences:
    def test_resolve_pointer_escapes(self):
        assert tools.resolve_pointer("/components/schemas/a~1b", DOC) == {"type": "string"}
        assert tools.resolve_pointer("/components/schemas/Tilde~0", DOC) == {"type": "integer"}

    def test_resolve_pointer_into_list(self):
        assert tools.resolve_pointer("/servers/0/url", DOC).startswith("https://")

    def test_resolve_pointer_missing(self):
        with pytest.raises(KeyError):
            tools.resolve_pointer("/components/nope", DOC)

    def test_deref_follows_chains(self):
        doc = {"a": {"$ref": "#/b"}, "b": {"$ref": "#/c"}, "c": {"type": "string"}}
        assert tools.deref({"$ref": "#/a"}, doc) == {"type": "string"}

    def test_deref_cycle(self):
        doc = {"a": {"$ref": "#/b"}, "b": {"$ref": "#/a"}}
        with pytest.raises(UnresolvableReferenceError, match="Circular"):
            tools.deref({"$ref": "#/a"}, doc)

    def test_ref_name(self):
        assert tools.ref_name({"$ref": "#/components/schemas/User"}) == "User"
        assert tools.ref_name({"type": "string"}) is None


class TestOperations:
    def test_counts_ignore_extensions(self):
        assert tools.count_operations(DOC) == 2
        assert tools.count_operations_query(DOC) == 1
        assert tools.count_operations_mutation(DOC) == 1

    def test_names(self):
        assert tools.generate_operation_id("get", "/users/{userId}/car") == "getUsersUserIdCar"
        assert tools.infer_resource_name_from_path("/users/{userId}/car") == "UsersCar"
        assert tools.format_operation_string("get", "/a", "Tools") == "Tools GET /a"

    def test_multiple_success_responses(self):
        registry = _registry()
        assert tools.get_response_status_code("/users/{userId}/car", "get", DOC, registry) == "200"
        (warning,) = registry.report.warnings
        assert warning.type == "MULTIPLE_RESPONSES"
        assert warning.mitigation.endswith("Selected '200'.")

    def test_no_success_response(self):
        assert tools.get_response_status_code("/forms", "post", DOC, _registry()) is None

    def test_non_json_request_is_a_string_placeholder(self):
        payload = tools.get_request_schema_and_names("/forms", "post", DOC)
        assert payload["content_type"] == "application/x-www-form-urlencoded"
        assert payload["schema"]["type"] == "string"
        assert "Original top level description: 'Form'" in payload["schema"]["description"]
        assert payload["names"] == {"from_path": "applicationX-www-form-urlencoded"}

    def test_no_request_body(self):
        assert tools.get_request_schema_and_names("/users/{userId}/car", "get", DOC) == {}


class TestServers:
    def test_document_servers_with_variables(self):
        servers = tools.get_servers("/users/{userId}/car", "get", DOC)
        assert tools._build_url(servers[0]) == "https://eu.api.example/v2/"

    def test_operation_servers_win(self):
        assert tools.get_servers("/forms", "post", DOC) == [{"url": "http://forms.example"}]

    def test_default_server(self):
        doc = {"paths": {"/a": {"get": {}}}}
        assert tools.get_servers("/a", "get", doc) == [{"url": "/"}]
