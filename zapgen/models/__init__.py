"""Data models for zapgen."""

from .db_enum import (
    PackageOptionCategory,
    PackageType,
    SessionOption,
    Side,
    StorageOption,
)
from .generation import (
    GenerateRequest,
    GenerationError,
    GenerationResult,
    ImportResult,
    TemplateContext,
    TemplateDefinition,
    TemplateMetadata,
    ZclContext,
)

__all__ = [
    "PackageOptionCategory",
    "PackageType",
    "SessionOption",
    "Side",
    "StorageOption",
    "GenerateRequest",
    "GenerationError",
    "GenerationResult",
    "ImportResult",
    "TemplateContext",
    "TemplateDefinition",
    "TemplateMetadata",
    "ZclContext",
]
