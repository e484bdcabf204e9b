"""
Generation Models

Pydantic models for loaded packages, imported sessions and generation output.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TemplateDefinition(BaseModel):
    """One template entry of a gen-templates.json file."""

    path: str = Field(..., description="Template path, relative to the metafile")
    name: str = Field("", description="Human readable template name")
    output: str = Field(..., description="Output file name")


class TemplateMetadata(BaseModel):
    """Parsed gen-templates.json."""

    name: str = Field(..., description="Template set name")
    version: str = Field(..., description="Template set version")
    templates: List[TemplateDefinition] = Field(default_factory=list)
    options: Dict[str, Dict[str, str]] = Field(
        default_factory=dict, description="Package options: category -> code -> label"
    )


class TemplateContext(BaseModel):
    """Result of loading a template set into the database."""

    path: str
    crc: int
    package_id: int
    template_data: TemplateMetadata
    template_package_ids: List[int] = Field(default_factory=list)


class ZclContext(BaseModel):
    """Result of loading ZCL metadata into the database."""

    path: str
    crc: int
    package_id: int
    version: Optional[str] = None
    cluster_count: int = 0


class ImportResult(BaseModel):
    """Result of importing a .zap project file."""

    session_id: int
    zcl_package_id: Optional[int] = None
    endpoint_type_ids: List[int] = Field(default_factory=list)


class GenerationError(BaseModel):
    """Error raised while rendering one template."""

    message: str = Field(..., description="Error message, including template location")
    template: str = Field(..., description="Template file name")
    line: Optional[int] = Field(None, description="Template line of the failure")
    column: int = Field(0, description="Template column of the failure")
    error_type: str = Field("Exception", description="Exception class name")


class GenerationResult(BaseModel):
    """
    Output of a generation pass.

    Content and errors are keyed by output file name.
    """

    session_id: int
    template_package_id: int
    content: Dict[str, str] = Field(default_factory=dict)
    errors: Dict[str, GenerationError] = Field(default_factory=dict)
    partial: bool = False
    generate_args: Dict[str, Any] = Field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class GenerateRequest(BaseModel):
    """Body of POST /api/generate."""

    session_id: int
    template_package_id: int
    generate_args: Dict[str, Any] = Field(default_factory=dict)
    disable_deprecation_warnings: bool = False
    templates: Optional[List[str]] = Field(
        None, description="Output names to restrict generation to"
    )
