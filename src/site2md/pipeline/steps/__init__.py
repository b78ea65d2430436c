"""Pipeline steps for fetch operations."""

from .analyze import AnalyzeStep
from .convert import ConvertStep
from .extract import ExtractStep
from .fetch import FetchStep
from .openapi import OpenApiStep

__all__ = [
    "AnalyzeStep",
    "ConvertStep",
    "ExtractStep",
    "FetchStep",
    "OpenApiStep",
]
