"""Domain models for the product categorization pipeline.

This package contains the value objects passed between the spreadsheet
reader, the normalizer, the orchestrator and the categorization client.
"""

from .category_request import (
    CategoryInputData,
    CategoryRequestItem,
    Language,
    RequestOptions,
    language_for_locale,
)
from .category_response import CategoryResponseItem
from .config_models import ColumnLayout, PipelineSettings
from .error_record import ErrorRecord
from .excel_file import FileProcessingResult, FileStatus, InvalidTransitionError, UploadedFile
from .processing_result import BatchRunResult, FileBatch, IngestResult, StatusSummary

__all__ = [
    # Request / response
    "CategoryInputData",
    "CategoryRequestItem",
    "CategoryResponseItem",
    "Language",
    "RequestOptions",
    "language_for_locale",
    # Settings
    "ColumnLayout",
    "PipelineSettings",
    # Processing models
    "UploadedFile",
    "FileStatus",
    "FileProcessingResult",
    "InvalidTransitionError",
    "FileBatch",
    "IngestResult",
    "StatusSummary",
    "BatchRunResult",
    "ErrorRecord",
]
