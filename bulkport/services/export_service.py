"""
Export service: fetch entities and render them as a file.

The finder of an entity type receives the caller's ExportFilter as is;
its result is rendered with the policy's field paths and style
directives. Failures are reported on the returned ExportFile instead of
being raised.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import date

from bulkport.adapters import CsvAdapter, ExportWriter, XlsxWriterAdapter
from bulkport.models import ExportFile, ExportFilter, ExportFormat, ExportPolicy, Finder

logger = logging.getLogger(__name__)


def export_filename(stem: str, export_format: ExportFormat, day: date) -> str:
    """Build ``"{stem}-{YYYY-MM-DD}{ext}"``."""
    return f"{stem}-{day.isoformat()}{export_format.extension}"


class ExportService:
    """
    Renders exports for any entity type.

    Attributes:
        writers: Writer used for each output format.
    """

    def __init__(
        self,
        writers: Mapping[ExportFormat, ExportWriter] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        """
        Initialize the ExportService.

        Args:
            writers: Writers by format; defaults to XlsxWriter for XLSX and
                the CSV adapter for CSV.
            today: Clock used to date export file names.
        """
        self.writers: dict[ExportFormat, ExportWriter] = {
            ExportFormat.XLSX: XlsxWriterAdapter(),
            ExportFormat.CSV: CsvAdapter(),
        }
        if writers:
            self.writers.update(writers)
        self._today = today

    def export(
        self,
        policy: ExportPolicy,
        finder: Finder,
        export_filter: ExportFilter | None = None,
        export_format: ExportFormat | str | None = None,
    ) -> ExportFile:
        """
        Fetch and render the records of one entity type.

        Args:
            policy: Export policy of the entity type.
            finder: Callable returning the entities for a filter.
            export_filter: Filter and paging passed to the finder.
            export_format: Requested format; the policy default applies when
                missing, and XLSX when the name is not recognised.

        Returns:
            ExportFile with the rendered bytes, or ``success=False`` and the
            failure reason.
        """
        if isinstance(export_format, ExportFormat):
            fmt = export_format
        elif not export_format:
            fmt = policy.default_format
        else:
            fmt = ExportFormat.from_string(export_format)
        export_filter = export_filter or ExportFilter()
        filename = export_filename(policy.filename_stem, fmt, self._today())
        logger.info("Starting export for entity '%s' in format %s", policy.entity, fmt.value)

        try:
            entities = list(finder(export_filter) or [])
            logger.info("Fetched %d records for export of '%s'", len(entities), policy.entity)
            content = self.writers[fmt].render(entities, policy.fields, policy.styles)
        except Exception as e:
            logger.exception("Export failed for entity '%s'", policy.entity)
            return ExportFile(
                success=False,
                filename=filename,
                content_type=fmt.content_type,
                message=f"Export failed: {e}",
            )

        logger.info("Exported %d records for '%s' (%d bytes)", len(entities), policy.entity, len(content))
        return ExportFile(
            success=True,
            content=content,
            filename=filename,
            content_type=fmt.content_type,
            record_count=len(entities),
            message=f"Exported {len(entities)} records",
        )
