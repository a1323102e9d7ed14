"""
Data Transformation Module
"""
from .normalizers import (
    BirthDateOutcome,
    ParsedDate,
    TrueDate,
    Unparseable,
    normalize_birth_date,
    normalize_location,
)
from .rebuild import RebuildMode, RebuildPipeline, RebuildResult, rebuild_analytics

__all__ = [
    "BirthDateOutcome",
    "ParsedDate",
    "TrueDate",
    "Unparseable",
    "normalize_birth_date",
    "normalize_location",
    "RebuildMode",
    "RebuildPipeline",
    "RebuildResult",
    "rebuild_analytics",
]
