from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import pytest
import pytest_asyncio

RESOURCES = Path(__file__).parent / "resources"
ZCL_METAFILE = RESOURCES / "zcl.json"
TEMPLATE_METAFILE = RESOURCES / "templates" / "gen-templates.json"
ZAP_FILE = RESOURCES / "three-endpoint-device.zap"


@dataclass
class LoadedSession:
    db: object
    zcl_package_id: int
    template_package_id: int
    session_id: int
    endpoint_type_ids: list


@pytest.fixture
def resources() -> Path:
    return RESOURCES


@pytest_asyncio.fixture
async def db(tmp_path):
    from zapgen.db import db_api

    pool = await db_api.init_database_and_load_schema(str(tmp_path / "test.sqlite"), pool_name="test")
    try:
        yield pool
    finally:
        await db_api.close_database(pool)


@pytest_asyncio.fixture
async def loaded(db) -> LoadedSession:
    """ZCL data, the unit test template set and the three endpoint project, loaded."""
    from zapgen.db import query_package
    from zapgen.generator.generation_engine import load_templates
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    zcl = await load_zcl(db, str(ZCL_METAFILE))
    templates = await load_templates(db, TEMPLATE_METAFILE)
    imported = await import_data_from_file(db, str(ZAP_FILE), zcl_package_id=zcl.package_id)
    await query_package.insert_session_package(db, imported.session_id, templates.package_id)
    return LoadedSession(
        db=db,
        zcl_package_id=zcl.package_id,
        template_package_id=templates.package_id,
        session_id=imported.session_id,
        endpoint_type_ids=imported.endpoint_type_ids,
    )
