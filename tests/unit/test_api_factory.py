"""Unit tests for ApiFactory against the Test module fixture."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from doc_builder.src.config import DocumentationSettings
from doc_builder.src.exceptions import (
    ConfigNotFoundError,
    MalformedFieldSpecError,
    UnknownApiError,
    UnknownServiceError,
)
from doc_builder.src.factory.api_factory import ApiFactory, create_api_factory
from doc_builder.src.sources.module_source import FileModuleSource, InMemoryModuleSource
from shared.models.documentation import Api, Field, HttpMethod, Operation, Service, ServiceKind

FIXTURES = Path(__file__).resolve().parents[1] / "fixtures" / "module-config"
DOC_CONFIG = FIXTURES / "Test" / "config" / "documentation.config.json"


@pytest.fixture
def api_factory():
    return ApiFactory(FileModuleSource(FIXTURES, modules=["Test"]))


@pytest.fixture
def doc_config():
    return json.loads(DOC_CONFIG.read_text(encoding="utf-8"))


def assert_contains_status_codes(expected, operation):
    actual = operation.get_status_codes()
    missing = [code for code in expected if code not in actual]
    assert not missing, f"Missing codes {missing} in {actual}"


class TestCreateApiList:
    """Test listing of API modules."""

    def test_single_module(self, api_factory):
        """Test the fixture module is listed with its one version."""
        assert api_factory.create_api_list() == [{"name": "Test", "versions": ["1"]}]

    def test_modules_without_api_config_skipped(self):
        """Test modules with neither REST nor RPC configuration are left out."""
        source = InMemoryModuleSource({
            "Plain": {"routes": {}},
            "Shop": {"rpc": {"Shop.V2.Rpc.Ping.Controller": {"service_name": "Ping"}}},
            "Admin": {
                "rest": {"Admin.V3.Rest.User.Controller": {"service_name": "User"}},
                "rpc": {"Admin.V1.Rpc.Ping.Controller": {"service_name": "Ping"}},
            },
        })

        assert ApiFactory(source).create_api_list() == [
            {"name": "Shop", "versions": ["2"]},
            {"name": "Admin", "versions": ["1", "3"]},
        ]

    def test_unknown_listed_module_propagates(self, tmp_path):
        """Test configuration lookup failures are not swallowed."""
        factory = ApiFactory(FileModuleSource(tmp_path, modules=["Ghost"]))

        with pytest.raises(ConfigNotFoundError):
            factory.create_api_list()


class TestCreateApi:
    """Test building an Api."""

    def test_create_api(self, api_factory):
        """Test name, version and one service per controller."""
        api = api_factory.create_api("Test", 1)

        assert isinstance(api, Api)
        assert api.name == "Test"
        assert api.version == 1
        assert len(api.services) == 7

    def test_services_in_declaration_order(self, api_factory):
        """Test REST services come first, then RPC, each in declaration order."""
        api = api_factory.create_api("Test", 1)

        assert [service.name for service in api.services] == [
            "FooBar", "FooBarCollection", "Bands", "EntityFields", "Ping", "Status", "Noop",
        ]

    def test_version_as_string(self, api_factory):
        """Test versions given as strings are accepted."""
        assert api_factory.create_api("Test", "1").version == 1
        assert api_factory.create_api("Test", "v1").version == 1

    def test_unknown_version(self, api_factory):
        """Test a version with no controllers raises UnknownApiError."""
        with pytest.raises(UnknownApiError) as exc_info:
            api_factory.create_api("Test", 2)

        assert exc_info.value.version == 2
        assert exc_info.value.http_status == 404

    @pytest.mark.parametrize("version", [0, -1, "latest"])
    def test_invalid_version(self, api_factory, version):
        """Test non-positive or non-numeric versions raise UnknownApiError."""
        with pytest.raises(UnknownApiError):
            api_factory.create_api("Test", version)

    def test_unknown_module(self, api_factory):
        """Test unknown modules raise ConfigNotFoundError."""
        with pytest.raises(ConfigNotFoundError):
            api_factory.create_api("Nope", 1)

    def test_log_context_released(self, api_factory):
        """Test module/version log context does not leak past the call."""
        with pytest.raises(UnknownApiError):
            api_factory.create_api("Test", 5)

        context = structlog.contextvars.get_contextvars()
        assert "module" not in context
        assert "version" not in context

    def test_each_call_builds_fresh_objects(self, api_factory):
        """Test calls are independent and deterministic."""
        first = api_factory.create_api("Test", 1)
        second = api_factory.create_api("Test", 1)

        assert first == second
        assert first is not second

    def test_caller_log_context_restored(self, api_factory):
        """Test module/version values bound by the caller survive the call."""
        structlog.contextvars.bind_contextvars(module="Outer", version="outer")
        try:
            api_factory.create_api("Test", 1)
            with pytest.raises(UnknownApiError):
                api_factory.create_api("Test", 5)

            context = structlog.contextvars.get_contextvars()
            assert context["module"] == "Outer"
            assert context["version"] == "outer"
        finally:
            structlog.contextvars.unbind_contextvars("module", "version")

    def test_bad_authorization_flag_keeps_declared_flags(self):
        """Test a non-boolean flag does not erase the rest of the policy."""
        controller = "Shop.V1.Rest.Order.Controller"
        source = InMemoryModuleSource({
            "Shop": {
                "rest": {controller: {"service_name": "Order", "collection_http_methods": ["GET", "POST"]}},
                "authorization": {controller: {"collection": {"GET": None, "POST": True}}},
            }
        })

        service = ApiFactory(source).create_api("Shop", 1).get_service("Order")

        post = next(op for op in service.get_operations() if op.http_method == HttpMethod.POST)
        get = next(op for op in service.get_operations() if op.http_method == HttpMethod.GET)
        assert post.requires_authorization is True
        assert_contains_status_codes(["400", "401", "403", "422"], post)
        assert get.requires_authorization is False

    @pytest.mark.parametrize("whitelist", ["sort", ["", "sort"], ["sort", 7]])
    def test_loose_query_whitelist_keeps_service(self, whitelist):
        """Test a scalar or partly invalid query whitelist still yields the service."""
        source = InMemoryModuleSource({
            "Shop": {
                "rest": {
                    "Shop.V1.Rest.Order.Controller": {
                        "service_name": "Order",
                        "collection_http_methods": ["GET"],
                        "collection_query_whitelist": whitelist,
                    },
                    "Shop.V1.Rest.Item.Controller": {"service_name": "Item"},
                }
            }
        })

        api = ApiFactory(source).create_api("Shop", 1)

        assert [service.name for service in api.services] == ["Order", "Item"]
        assert [field.name for field in api.get_service("Order").get_fields("query")] == ["sort"]

    def test_malformed_field_spec_fails_api(self):
        """Test a malformed field spec surfaces from create_api."""
        source = InMemoryModuleSource({
            "Shop": {
                "rest": {"Shop.V1.Rest.Order.Controller": {"service_name": "Order"}},
                "content_validation": {"Shop.V1.Rest.Order.Controller": {"input_filter": "Bad"}},
                "input_filter_specs": {"Bad": [{"name": "lines", "collection": True, "fields": []}]},
            }
        })

        with pytest.raises(MalformedFieldSpecError):
            ApiFactory(source).create_api("Shop", 1)


class TestCreateService:
    """Test building single services, mirroring the fixture's services."""

    def test_create_rest_service(self, api_factory, doc_config):
        """Test the FooBar REST service."""
        api = api_factory.create_api("Test", 1)

        service = api_factory.create_service(api, "FooBar")

        assert isinstance(service, Service)
        assert service.name == "FooBar"
        assert service.description == doc_config["Test.V1.Rest.FooBar.Controller"]["description"]

        fields = service.get_fields("input_filter")
        assert len(fields) == 5
        assert isinstance(fields[0], Field)
        assert fields[2].name == "foogoober/subgoober"
        assert fields[3].name == "foofoogoober/subgoober/subgoober"

        operations = service.get_operations()
        assert len(operations) == 2
        for operation in operations:
            assert isinstance(operation, Operation)
            if operation.http_method == HttpMethod.GET:
                assert operation.requires_authorization is False
                assert_contains_status_codes(["406", "415", "200"], operation)
            elif operation.http_method == HttpMethod.POST:
                assert operation.requires_authorization is True
                assert_contains_status_codes(["406", "415", "400", "422", "401", "403", "201"], operation)
            else:
                pytest.fail(f"Unexpected HTTP method encountered: {operation.http_method}")

        entity_operations = service.get_entity_operations()
        assert len(entity_operations) == 4
        for operation in entity_operations:
            if operation.http_method == HttpMethod.GET:
                assert operation.requires_authorization is False
                assert_contains_status_codes(["406", "415", "404", "200"], operation)
            elif operation.http_method in (HttpMethod.PATCH, HttpMethod.PUT):
                assert operation.requires_authorization is True
                assert_contains_status_codes(["406", "415", "400", "422", "401", "403", "200"], operation)
            elif operation.http_method == HttpMethod.DELETE:
                assert operation.requires_authorization is True
                assert_contains_status_codes(["406", "415", "401", "403", "204"], operation)
            else:
                pytest.fail(f"Unexpected entity HTTP method encountered: {operation.http_method}")

    def test_create_rest_service_with_collection(self, api_factory, doc_config):
        """Test collection field groups and query fields."""
        api = api_factory.create_api("Test", 1)

        service = api_factory.create_service(api, "FooBarCollection")

        assert service.name == "FooBarCollection"
        assert service.description == doc_config["Test.V1.Rest.FooBarCollection.Controller"]["description"]

        fields = service.get_fields("input_filter")
        assert [field.name for field in fields] == ["FooBarCollection[]/FooBar", "AnotherCollection[]/FooBar"]

        query = service.get_fields("query")
        assert [field.name for field in query] == ["one", "two"]
        assert query[0].type == "integer"
        assert query[1].type == "string"

    def test_create_rest_bands_service(self, api_factory, doc_config):
        """Test deeply nested collections are flattened in declaration order."""
        api = api_factory.create_api("Test", 1)

        service = api_factory.create_service(api, "Bands")

        assert service.name == "Bands"
        assert service.description == doc_config["Test.V1.Rest.Bands.Controller"]["description"]
        assert [field.name for field in service.get_fields("input_filter")] == [
            "name",
            "artists[]/first_name",
            "artists[]/last_name",
            "debut_album/title",
            "debut_album/release_date",
            "debut_album/tracks[]/number",
            "debut_album/tracks[]/title",
            "albums[]/title",
            "albums[]/release_date",
            "albums[]/tracks[]/number",
            "albums[]/tracks[]/title",
        ]

    def test_create_rpc_service(self, api_factory, doc_config):
        """Test the Ping RPC service and its documented prose."""
        api = api_factory.create_api("Test", 1)
        ping_docs = doc_config["Test.V1.Rpc.Ping.Controller"]

        service = api_factory.create_service(api, "Ping")

        assert service.name == "Ping"
        assert service.kind == ServiceKind.RPC
        assert service.description == ping_docs["description"]

        operations = service.get_operations()
        assert len(operations) == 1
        operation = operations[0]
        assert operation.http_method == HttpMethod.GET
        assert operation.description == ping_docs["GET"]["description"]
        assert operation.request_description == ping_docs["GET"]["request"]
        assert operation.response_description == ping_docs["GET"]["response"]
        assert operation.requires_authorization is False
        assert_contains_status_codes(["406", "415", "200"], operation)

    def test_fields_for_entity_methods(self, api_factory):
        """Test method-specific input filters form their own field group."""
        api = api_factory.create_api("Test", 1)

        service = api_factory.create_service(api, "EntityFields")

        assert service.name == "EntityFields"
        assert len(service.get_fields("PUT")) == 1
        assert len(service.get_fields("input_filter")) == 2

    def test_zero_methods(self, api_factory):
        """Test a service without methods has no operations."""
        api = api_factory.create_api("Test", 1)

        assert api_factory.create_service(api, "Noop").get_operations() == []

    def test_unknown_service(self, api_factory):
        """Test unknown service names raise UnknownServiceError."""
        api = api_factory.create_api("Test", 1)

        with pytest.raises(UnknownServiceError) as exc_info:
            api_factory.create_service(api, "Missing")

        assert exc_info.value.service == "Missing"

    def test_service_outside_version_scope(self):
        """Test services of another version are not found."""
        source = InMemoryModuleSource({
            "Shop": {
                "rpc": {
                    "Shop.V1.Rpc.Ping.Controller": {"service_name": "Ping", "http_methods": ["GET"]},
                    "Shop.V2.Rpc.Health.Controller": {"service_name": "Health", "http_methods": ["GET"]},
                }
            }
        })
        factory = ApiFactory(source)
        api = factory.create_api("Shop", 1)

        with pytest.raises(UnknownServiceError):
            factory.create_service(api, "Health")

    def test_created_service_matches_api_service(self, api_factory):
        """Test create_service rebuilds the same service the api holds."""
        api = api_factory.create_api("Test", 1)

        assert api_factory.create_service(api, "Bands") == api.get_service("Bands")

    def test_model_serializes(self, api_factory):
        """Test the model graph dumps to plain data for renderers."""
        api = api_factory.create_api("Test", 1)

        payload = json.loads(api.model_dump_json())

        assert payload["name"] == "Test"
        ping = next(service for service in payload["services"] if service["name"] == "Ping")
        assert ping["kind"] == "rpc"
        assert ping["operations"][0]["http_method"] == "GET"


class TestCreateApiFactory:
    """Test the settings-driven factory constructor."""

    def test_uses_file_source_from_settings(self):
        """Test the factory reads modules from the configured path."""
        settings = DocumentationSettings(modules_path=FIXTURES, modules=["Test"])

        with patch("doc_builder.src.factory.api_factory.configure_logging") as configure:
            factory = create_api_factory(settings)

        configure.assert_called_once_with(
            log_level="INFO", json_logs=True, service_name="api-documentation"
        )
        assert isinstance(factory.source, FileModuleSource)
        assert factory.create_api_list() == [{"name": "Test", "versions": ["1"]}]

    def test_logging_configuration_optional(self):
        """Test logging setup can be left to the caller."""
        settings = DocumentationSettings(modules_path=FIXTURES)

        with patch("doc_builder.src.factory.api_factory.configure_logging") as configure:
            create_api_factory(settings, configure_logs=False)

        configure.assert_not_called()
