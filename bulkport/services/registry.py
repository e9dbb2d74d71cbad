"""
Explicit registry of entity types taking part in import/export.

Entity types are registered by direct calls at process start. The
registry is process-wide and may be read from several threads, so all
access goes through a lock.
"""

import logging
import threading
from dataclasses import dataclass, field

from bulkport.exceptions import EntityNotRegisteredError
from bulkport.models import (
    EntityInfo,
    ExportPolicy,
    Finder,
    ImportPolicy,
    NullValidator,
    Saver,
    Validator,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportRegistration:
    """Import policy of an entity type with its capabilities."""

    policy: ImportPolicy
    saver: Saver
    validator: Validator = field(default_factory=NullValidator)


@dataclass(frozen=True)
class ExportRegistration:
    """Export policy of an entity type with its finder."""

    policy: ExportPolicy
    finder: Finder


class ExchangeRegistry:
    """
    Entity name -> import and export registrations.

    Registering an entity name again replaces the earlier registration.

    Example:
        registry = ExchangeRegistry()
        registry.register_import(ImportPolicy(entity="customer", mapper=CustomerMapper()),
                                 Saver(save_many=repo.insert_all))
        registry.register_export(ExportPolicy(entity="customer", fields=["email"]), repo.find)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._imports: dict[str, ImportRegistration] = {}
        self._exports: dict[str, ExportRegistration] = {}

    def register_import(
        self,
        policy: ImportPolicy,
        saver: Saver,
        validator: Validator | None = None,
    ) -> ImportRegistration:
        registration = ImportRegistration(policy, saver, validator or NullValidator())
        with self._lock:
            self._imports[policy.entity] = registration
        logger.info(
            "Registered import for entity '%s' (%s, max %d rows, batch %d)",
            policy.entity,
            policy.failure_strategy.value,
            policy.max_rows,
            policy.batch_size,
        )
        return registration

    def register_export(self, policy: ExportPolicy, finder: Finder) -> ExportRegistration:
        registration = ExportRegistration(policy, finder)
        with self._lock:
            self._exports[policy.entity] = registration
        logger.info("Registered export for entity '%s' (%d fields)", policy.entity, len(policy.fields))
        return registration

    def get_import(self, entity: str) -> ImportRegistration:
        """
        Raises:
            EntityNotRegisteredError: If the entity has no import registration.
        """
        with self._lock:
            registration = self._imports.get(entity)
            available = sorted(self._imports)
        if registration is None:
            raise EntityNotRegisteredError(entity, "import", available)
        return registration

    def get_export(self, entity: str) -> ExportRegistration:
        """
        Raises:
            EntityNotRegisteredError: If the entity has no export registration.
        """
        with self._lock:
            registration = self._exports.get(entity)
            available = sorted(self._exports)
        if registration is None:
            raise EntityNotRegisteredError(entity, "export", available)
        return registration

    def entities(self) -> list[EntityInfo]:
        """Describe every registered entity name, sorted by name."""
        with self._lock:
            imports = dict(self._imports)
            exports = dict(self._exports)

        infos: list[EntityInfo] = []
        for name in sorted(set(imports) | set(exports)):
            imp = imports.get(name)
            exp = exports.get(name)
            infos.append(
                EntityInfo(
                    name=name,
                    importable=imp is not None,
                    exportable=exp is not None,
                    required_columns=imp.policy.mapper.required_columns() if imp else [],
                    optional_columns=imp.policy.mapper.optional_columns() if imp else [],
                    export_fields=list(exp.policy.fields) if exp else [],
                )
            )
        return infos

    def clear(self) -> None:
        with self._lock:
            self._imports.clear()
            self._exports.clear()
