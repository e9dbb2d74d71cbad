"""
Adapters for tabular file formats.

Implements the adapter pattern for the different codecs:
- CsvAdapter: Delimited text read/write using the csv module
- OpenpyxlAdapter: .xlsx reading and import templates with dropdowns (openpyxl)
- CalamineAdapter: .xls/.xlsb/.ods reading using python-calamine (Rust-based)
- XlsxWriterAdapter: Styled .xlsx exports using XlsxWriter
"""

from bulkport.adapters.base import ExportWriter, TabularReader, TemplateWriter
from bulkport.adapters.calamine_adapter import CalamineAdapter
from bulkport.adapters.csv_adapter import CsvAdapter
from bulkport.adapters.openpyxl_adapter import OpenpyxlAdapter
from bulkport.adapters.xlsxwriter_adapter import XlsxWriterAdapter

__all__ = [
    "TabularReader",
    "ExportWriter",
    "TemplateWriter",
    "CsvAdapter",
    "CalamineAdapter",
    "OpenpyxlAdapter",
    "XlsxWriterAdapter",
]
