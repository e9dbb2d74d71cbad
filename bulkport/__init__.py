"""
bulkport: generic bulk import/export of tabular files.

This package turns CSV and spreadsheet uploads into typed entities and
renders entities back out as styled spreadsheets, CSV files and import
templates, without per-entity import/export code.

Architecture:
    - Service Layer pattern: import, export and template services behind
      an ExchangeService facade, with a thin FastAPI surface
    - Adapters per codec: csv, openpyxl, python-calamine, XlsxWriter
    - Entity types plug in through RowMapper, Saver, Finder and Validator
"""

__version__ = "0.1.0"
__author__ = "Jeff"
