"""
Template service: render an import template from a mapper's declarations.
"""

import logging
from collections.abc import Mapping

from bulkport.adapters import CsvAdapter, OpenpyxlAdapter, TemplateWriter
from bulkport.models import ExportFile, ExportFormat, ImportPolicy

logger = logging.getLogger(__name__)


def template_filename(entity: str, export_format: ExportFormat) -> str:
    """Build ``"{entity}-import-template{ext}"``."""
    return f"{entity}-import-template{export_format.extension}"


class TemplateService:
    """
    Builds import templates: marked headers, one example row, dropdowns.

    Attributes:
        writers: Template writer used for each output format.
    """

    def __init__(self, writers: Mapping[ExportFormat, TemplateWriter] | None = None) -> None:
        self.writers: dict[ExportFormat, TemplateWriter] = {
            ExportFormat.XLSX: OpenpyxlAdapter(),
            ExportFormat.CSV: CsvAdapter(),
        }
        if writers:
            self.writers.update(writers)

    def generate(
        self,
        policy: ImportPolicy,
        export_format: ExportFormat | str | None = None,
    ) -> ExportFile:
        """
        Render the import template of one entity type.

        Args:
            policy: Import policy whose mapper declares the columns.
            export_format: Requested format; XLSX when missing or unknown.

        Returns:
            ExportFile with the template bytes, or ``success=False`` and the
            failure reason.
        """
        if isinstance(export_format, ExportFormat):
            fmt = export_format
        else:
            fmt = ExportFormat.from_string(export_format)
        filename = template_filename(policy.entity, fmt)
        mapper = policy.mapper
        logger.info("Generating %s template for entity '%s'", fmt.value, policy.entity)

        try:
            content = self.writers[fmt].render_template(
                mapper.required_columns(),
                mapper.optional_columns(),
                mapper.example_row(),
                mapper.dropdown_options(),
            )
        except Exception as e:
            logger.exception("Template generation failed for entity '%s'", policy.entity)
            return ExportFile(
                success=False,
                filename=filename,
                content_type=fmt.content_type,
                message=f"Template generation failed: {e}",
            )

        return ExportFile(
            success=True,
            content=content,
            filename=filename,
            content_type=fmt.content_type,
            message=f"Template for '{policy.entity}'",
        )
