"""Api factory: the entry point of the documentation builder.

Every call resolves configuration afresh and returns newly built, frozen
model objects. Nothing is cached between calls, so a factory can be shared
between threads as long as the underlying module source is read-only.
"""

from typing import Any, Dict, List, Optional, Union

import structlog

from doc_builder.src.aggregation.config_aggregator import ConfigAggregator
from doc_builder.src.aggregation.controller_config import MergedConfig
from doc_builder.src.builders.service_builder import ServiceBuilder
from doc_builder.src.config import DocumentationSettings, get_settings
from doc_builder.src.exceptions import UnknownApiError, UnknownServiceError
from doc_builder.src.sources.module_source import FileModuleSource, ModuleSource
from shared.logging.structured_logger import configure_logging, log_context
from shared.models.documentation import Api, Service

logger = structlog.get_logger(__name__)


class ApiFactory:
    """Builds documentation for the API modules exposed by a module source."""

    def __init__(
        self,
        source: ModuleSource,
        aggregator: Optional[ConfigAggregator] = None,
        service_builder: Optional[ServiceBuilder] = None,
    ):
        self.source = source
        self.aggregator = aggregator or ConfigAggregator(source)
        self.service_builder = service_builder or ServiceBuilder()

    def create_api_list(self) -> List[Dict[str, Any]]:
        """
        List the API modules and their versions.

        Modules keep the module source's enumeration order; modules without
        any REST or RPC configuration are left out.

        Returns:
            ``[{"name": <module>, "versions": [<version>, ...]}, ...]``
        """
        apis = []
        for module in self.source.list_modules():
            config = self.aggregator.resolve(module)
            if not config.has_api_configuration:
                logger.debug("module_without_api_skipped", module=module)
                continue
            apis.append({"name": module, "versions": config.versions()})

        logger.info("api_list_created", apis=len(apis))
        return apis

    def create_api(self, module: str, version: Union[int, str] = 1) -> Api:
        """
        Build the documentation of one module at one version.

        Args:
            module: Module name
            version: API version

        Returns:
            Api with one service per REST and RPC controller of that version

        Raises:
            ConfigNotFoundError: If the module is unknown
            UnknownApiError: If the module has nothing for that version
            MalformedFieldSpecError: If a service's field specification is malformed
        """
        api_version = self._normalize_version(module, version)

        with log_context(module=module, version=api_version):
            config = self.aggregator.resolve(module)
            controllers = config.controllers_for_version(api_version)
            if not controllers:
                logger.warning("api_version_not_found", available=config.versions())
                raise UnknownApiError(module, api_version)

            api = Api(
                name=module,
                version=api_version,
                services=tuple(
                    self.service_builder.build(config, controller, api_version)
                    for controller in controllers
                ),
            )
            logger.info("api_created", services=[service.name for service in api.services])
            return api

    def create_service(self, api: Api, service_name: str) -> Service:
        """
        Build one service of an api.

        Args:
            api: Api whose module and version scope the lookup
            service_name: Service name, e.g. "FooBar"

        Returns:
            The service

        Raises:
            UnknownServiceError: If no controller in scope carries that name
        """
        config = self.aggregator.resolve(api.name)
        controller = self.find_controller(config, api.version, service_name)
        if controller is None:
            logger.warning("service_not_found", module=api.name, version=api.version, service=service_name)
            raise UnknownServiceError(api.name, api.version, service_name)

        return self.service_builder.build(config, controller, api.version)

    @staticmethod
    def find_controller(config: MergedConfig, version: int, service_name: str) -> Optional[str]:
        """REST controllers win over RPC controllers with the same service name."""
        for controller in config.controllers_for_version(version):
            declaration = config.rest.get(controller) or config.rpc.get(controller)
            if declaration.service_name == service_name:
                return controller
        return None

    @staticmethod
    def _normalize_version(module: str, version: Union[int, str]) -> int:
        try:
            api_version = int(str(version).lstrip("vV"))
        except (TypeError, ValueError) as e:
            raise UnknownApiError(module, version) from e
        if api_version <= 0:
            raise UnknownApiError(module, api_version)
        return api_version


def create_api_factory(
    settings: Optional[DocumentationSettings] = None,
    configure_logs: bool = True,
) -> ApiFactory:
    """
    Build a factory over the file-backed module source described by settings.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        configure_logs: Whether to configure structlog from the settings

    Returns:
        ApiFactory instance
    """
    settings = settings or get_settings()

    if configure_logs:
        configure_logging(
            log_level=settings.log_level,
            json_logs=settings.json_logs,
            service_name=settings.service_name,
        )

    logger.info(
        "api_factory_created",
        modules_path=str(settings.modules_path),
        modules=settings.modules,
    )
    return ApiFactory(FileModuleSource.from_settings(settings))
