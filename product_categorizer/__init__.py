"""Spreadsheet ingestion and batch categorization pipeline."""

__version__ = "0.1.0"
