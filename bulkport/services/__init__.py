"""
Service layer for bulk import/export operations.

Contains the import orchestrator, export and template services, the
entity registry and the ExchangeService facade used by the API.
"""

from bulkport.services.exchange_service import ExchangeService
from bulkport.services.export_service import ExportService
from bulkport.services.import_service import ImportService
from bulkport.services.registry import ExchangeRegistry, ExportRegistration, ImportRegistration
from bulkport.services.template_service import TemplateService

__all__ = [
    "ExchangeService",
    "ExchangeRegistry",
    "ImportRegistration",
    "ExportRegistration",
    "ImportService",
    "ExportService",
    "TemplateService",
]
