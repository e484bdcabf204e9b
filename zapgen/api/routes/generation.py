"""
API routes for loaded packages and code generation.

Generation renders every template of a template package for one user
session; the rendered files are returned, not written.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from zapgen.connectors import sqlite_pool as pool_module
from zapgen.db import query_package
from zapgen.exceptions import PackageNotFoundError, ZapGenError
from zapgen.generator import generation_engine
from zapgen.models import GenerateRequest, GenerationResult
from zapgen.models.db_enum import PackageType

router = APIRouter()
logger = logging.getLogger(__name__)


class PackageResponse(BaseModel):
    id: int
    parent_id: Optional[int] = None
    path: str
    type: str
    crc: Optional[int] = None
    version: Optional[str] = None
    description: Optional[str] = None


@router.get("/packages", response_model=List[PackageResponse])
async def list_packages(package_type: Optional[str] = Query(None, alias="type")):
    """
    List loaded packages, optionally of one type (`zclProperties`,
    `genTemplateJson`, `genSingleTemplate`).
    """
    if package_type is not None and package_type not in {t.value for t in PackageType}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown package type: {package_type}",
        )

    pool = pool_module.get_default_pool()
    if package_type is None:
        rows = await query_package.get_all_packages(pool)
    else:
        rows = await query_package.get_packages_by_type(pool, package_type)
    return [PackageResponse(**row) for row in rows]


@router.post("/generate", response_model=GenerationResult)
async def generate(request: GenerateRequest):
    """
    Render a template package for a session.

    Template errors don't fail the request: they're reported per output in
    `errors`, next to the content of the templates that rendered.
    """
    options: Dict[str, Any] = {"disable_deprecation_warnings": request.disable_deprecation_warnings}
    if request.templates:
        options["templates"] = request.templates

    pool = pool_module.get_default_pool()
    try:
        result = await generation_engine.generate(
            pool,
            request.session_id,
            request.template_package_id,
            request.generate_args,
            options,
        )
    except PackageNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ZapGenError as e:
        logger.error(f"Generation for session {request.session_id} failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result.has_errors:
        logger.warning(
            f"⚠️ Session {request.session_id}: {len(result.errors)} template(s) failed: "
            f"{', '.join(sorted(result.errors))}"
        )
    return result
