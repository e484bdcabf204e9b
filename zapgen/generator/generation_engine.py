"""
Generation Engine

Loads template sets (gen-templates.json) into the database and renders them
for a user session.

A template set file looks like:

    {
      "name": "Unit test templates",
      "version": "unit-test",
      "templates": [{"path": "test-fail.zapt", "name": "Failing template", "output": "test-fail.out"}],
      "options": {"cli": {"off": "Turn the light off"}}
    }
"""

import asyncio
import json
import logging
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import TemplateSyntaxError
from pydantic import ValidationError

from zapgen.config import settings
from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.db import query_package
from zapgen.exceptions import PackageNotFoundError, ZapGenError
from zapgen.models.db_enum import PackageType
from zapgen.models.generation import (
    GenerationError,
    GenerationResult,
    TemplateContext,
    TemplateDefinition,
    TemplateMetadata,
)
from zapgen.util import calculate_crc

from .template_engine import create_environment
from .template_util import (
    GenerationGlobal,
    TemplateScope,
    reset_current_global,
    set_current_global,
)

logger = logging.getLogger(__name__)


def _read_metadata(path: Path) -> TemplateMetadata:
    try:
        return TemplateMetadata.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ZapGenError(f"Invalid template metafile {path}: {e}") from e


async def load_templates(db: SqliteConnectionPool, metafile: Union[str, Path]) -> TemplateContext:
    """
    Load a template set into the database.

    The set is stored as a `genTemplateJson` package with one
    `genSingleTemplate` child package per template, plus its options.

    Args:
        db: Connection pool
        metafile: Path of gen-templates.json

    Returns:
        TemplateContext with the package id, CRC and parsed metadata
    """
    path = Path(metafile).resolve()
    if not path.is_file():
        raise ZapGenError(f"Template metafile not found: {path}")

    context = calculate_crc({"file_path": str(path), "data": path.read_bytes()})
    metadata = _read_metadata(path)

    existing = await query_package.get_package_by_path(db, str(path))
    if existing is None:
        package_id = await query_package.insert_path_crc(
            db,
            str(path),
            context["crc"],
            PackageType.GEN_TEMPLATES_JSON.value,
            version=metadata.version,
            description=metadata.name,
        )
    else:
        package_id = existing["id"]
        if existing["crc"] != context["crc"]:
            await query_package.update_path_crc(db, str(path), context["crc"])

    template_package_ids: List[int] = []
    for template in metadata.templates:
        template_package_ids.append(await _load_single_template(db, path.parent, package_id, template))

    for category, pairs in metadata.options.items():
        await query_package.insert_options_key_value_pairs(db, package_id, category, pairs.items())

    logger.info(
        f"📄 Loaded template set '{metadata.name}' ({metadata.version}) as package {package_id}: "
        f"{len(metadata.templates)} templates"
    )
    return TemplateContext(
        path=str(path),
        crc=context["crc"],
        package_id=package_id,
        template_data=metadata,
        template_package_ids=template_package_ids,
    )


async def _load_single_template(
    db: SqliteConnectionPool, base_dir: Path, parent_id: int, template: TemplateDefinition
) -> int:
    template_path = (base_dir / template.path).resolve()
    if not template_path.is_file():
        raise ZapGenError(f"Template not found: {template_path}")

    context = calculate_crc({"file_path": str(template_path), "data": template_path.read_bytes()})
    existing = await query_package.get_package_by_path(db, str(template_path))
    if existing is not None:
        if existing["crc"] != context["crc"]:
            await query_package.update_path_crc(db, str(template_path), context["crc"])
        return existing["id"]

    return await query_package.insert_path_crc(
        db,
        str(template_path),
        context["crc"],
        PackageType.GEN_SINGLE_TEMPLATE.value,
        parent_id=parent_id,
        description=template.name,
    )


def _template_line(exc: BaseException, template_name: str) -> Optional[int]:
    """Line of the innermost template frame in the exception's traceback."""
    if isinstance(exc, TemplateSyntaxError) and exc.lineno:
        return exc.lineno

    line = None
    suffix = template_name.replace("\\", "/")
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename and frame.filename.replace("\\", "/").endswith(suffix):
            line = frame.lineno
    return line


def _generation_error(exc: BaseException, template_name: str) -> GenerationError:
    line = _template_line(exc, template_name)
    return GenerationError(
        message=f"{exc} ({template_name}, line: {line}, column: 0)",
        template=template_name,
        line=line,
        column=0,
        error_type=type(exc).__name__,
    )


async def _settle_promises(global_: GenerationGlobal) -> None:
    pending = [p for p in global_.promises if not p.done()]
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def generate(
    db: SqliteConnectionPool,
    session_id: int,
    template_package_id: int,
    generate_args: Optional[Dict[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
) -> GenerationResult:
    """
    Render every template of a template package for a session.

    A failing template doesn't stop the others: its output is empty and its
    error (with the template line) is recorded under the output name.

    Args:
        db: Connection pool
        session_id: Session to generate for
        template_package_id: `genTemplateJson` package id
        generate_args: Arguments recorded with the result and exposed to helpers
        options: `disable_deprecation_warnings` (bool) and `templates`, a list
            of output names to restrict generation to

    Returns:
        GenerationResult with content and errors keyed by output name
    """
    options = options or {}
    package = await query_package.get_package_by_id(db, template_package_id)
    if package is None or package["type"] != PackageType.GEN_TEMPLATES_JSON.value:
        raise PackageNotFoundError(f"Template package {template_package_id} not found")

    metafile = Path(package["path"])
    metadata = _read_metadata(metafile)
    templates = metadata.templates
    selected = options.get("templates")
    if selected:
        templates = [t for t in templates if t.output in selected]

    env = create_environment(metafile.parent)
    disable_warnings = bool(
        options.get("disable_deprecation_warnings", settings.DISABLE_DEPRECATION_WARNINGS)
    )
    result = GenerationResult(
        session_id=session_id,
        template_package_id=template_package_id,
        partial=len(templates) != len(metadata.templates),
        generate_args=dict(generate_args or {}),
    )

    for template in templates:
        global_ = GenerationGlobal(
            db=db,
            session_id=session_id,
            gen_template_package_id=template_package_id,
            disable_deprecation_warnings=disable_warnings,
            generate_args=result.generate_args,
        )
        token = set_current_global(global_)
        try:
            jinja_template = env.get_template(template.path)
            result.content[template.output] = await jinja_template.render_async(this=TemplateScope(global_))
        except Exception as e:
            error = _generation_error(e, template.path)
            result.content[template.output] = ""
            result.errors[template.output] = error
            logger.error(f"❌ Generation of {template.output} failed: {error.message}")
        finally:
            await _settle_promises(global_)
            reset_current_global(token)

    logger.info(
        f"Generated {len(result.content) - len(result.errors)}/{len(templates)} files "
        f"for session {session_id}"
    )
    return result


async def generate_and_write_files(
    db: SqliteConnectionPool,
    session_id: int,
    template_package_id: int,
    output_dir: Union[str, Path],
    generate_args: Optional[Dict[str, Any]] = None,
    options: Optional[Dict[str, Any]] = None,
) -> GenerationResult:
    """
    Generate and write every successfully rendered output under `output_dir`.

    Returns:
        The GenerationResult; failed outputs are not written
    """
    result = await generate(db, session_id, template_package_id, generate_args, options)
    out = Path(output_dir)
    for output, content in result.content.items():
        if output in result.errors:
            continue
        target = out / output
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.info(f"💾 Wrote {target}")
    return result
