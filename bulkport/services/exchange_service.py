"""
Core exchange service layer.

This module provides the ExchangeService class, the single entry point
the HTTP layer (or any other caller) uses to import, export and generate
templates by entity name. It looks registrations up in the
ExchangeRegistry and delegates to the import, export and template
services, keeping transport concerns out of the engine.

Example:
    service = ExchangeService(registry)

    result = service.import_file("customer", content, "customers.xlsx")
    export = service.export("customer", ExportFilter(filters={"status": "ACTIVE"}), "csv")
    template = service.template("customer", "xlsx")
"""

from bulkport.models import EntityInfo, ExportFile, ExportFilter, ExportFormat, ImportResult
from bulkport.services.export_service import ExportService
from bulkport.services.import_service import ImportService
from bulkport.services.registry import ExchangeRegistry
from bulkport.services.template_service import TemplateService


class ExchangeService:
    """
    Facade over registry lookups and the import/export/template services.

    Data problems never raise from these methods: they come back as
    non-success results. Only an unknown entity name raises.

    Attributes:
        registry: Registry of entity types.
        importer: ImportService running imports.
        exporter: ExportService rendering exports.
        templates: TemplateService rendering templates.
    """

    def __init__(
        self,
        registry: ExchangeRegistry | None = None,
        importer: ImportService | None = None,
        exporter: ExportService | None = None,
        templates: TemplateService | None = None,
    ) -> None:
        """
        Initialize the ExchangeService.

        Args:
            registry: Registry to read from. Defaults to a new, empty one.
            importer: ImportService to use. Defaults to a new instance.
            exporter: ExportService to use. Defaults to a new instance.
            templates: TemplateService to use. Defaults to a new instance.
        """
        self.registry = registry if registry is not None else ExchangeRegistry()
        self.importer = importer or ImportService()
        self.exporter = exporter or ExportService()
        self.templates = templates or TemplateService()

    def list_entities(self) -> list[EntityInfo]:
        return self.registry.entities()

    def import_file(self, entity: str, content: bytes, filename: str | None) -> ImportResult:
        """
        Import a file for a registered entity type.

        Raises:
            EntityNotRegisteredError: If ``entity`` has no import registration.
        """
        registration = self.registry.get_import(entity)
        return self.importer.import_file(
            content,
            filename,
            registration.policy,
            registration.saver,
            registration.validator,
        )

    def export(
        self,
        entity: str,
        export_filter: ExportFilter | None = None,
        export_format: ExportFormat | str | None = None,
    ) -> ExportFile:
        """
        Export the records of a registered entity type.

        Raises:
            EntityNotRegisteredError: If ``entity`` has no export registration.
        """
        registration = self.registry.get_export(entity)
        return self.exporter.export(
            registration.policy,
            registration.finder,
            export_filter,
            export_format,
        )

    def template(self, entity: str, export_format: ExportFormat | str | None = None) -> ExportFile:
        """
        Generate the import template of a registered entity type.

        Raises:
            EntityNotRegisteredError: If ``entity`` has no import registration.
        """
        registration = self.registry.get_import(entity)
        return self.templates.generate(registration.policy, export_format)
