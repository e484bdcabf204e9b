"""
ZCL metadata loader.

Reads a JSON metafile describing atomic types and clusters (with their
commands and attributes) and stores it as a `zclProperties` package:

    {
      "version": "1.0",
      "description": "...",
      "atomics": [{"name": "int8u", "id": 32, "size": 1}],
      "clusters": [
        {
          "code": "0x0006", "name": "On/off", "define": "ON_OFF_CLUSTER",
          "commands": [{"code": "0x00", "name": "Off", "source": "client"}],
          "attributes": [{"code": "0x0000", "name": "on/off", "type": "boolean",
                          "side": "server", "default": "0x00"}]
        }
      ]
    }

Numeric codes may be integers or hex/decimal strings.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.db import query_package, query_zcl
from zapgen.exceptions import ZapGenError
from zapgen.models.db_enum import PackageType, Side
from zapgen.models.generation import ZclContext
from zapgen.util import calculate_crc, parse_int

logger = logging.getLogger(__name__)


async def load_zcl(db: SqliteConnectionPool, metafile: str) -> ZclContext:
    """
    Load a ZCL metafile into the database.

    A file already loaded with the same CRC is not loaded again; its existing
    package is returned. A file whose content changed is reloaded in place.

    Args:
        db: Connection pool
        metafile: Path of the JSON metafile

    Returns:
        ZclContext with the package id and CRC
    """
    path = Path(metafile).resolve()
    if not path.is_file():
        raise ZapGenError(f"ZCL metafile not found: {path}")

    context = calculate_crc({"file_path": str(path), "data": path.read_bytes()})
    try:
        metadata = json.loads(context["data"])
    except json.JSONDecodeError as e:
        raise ZapGenError(f"Invalid ZCL metafile {path}: {e}") from e

    existing = await query_package.get_package_by_path(db, str(path))
    if existing is not None and existing["crc"] == context["crc"]:
        cluster_count = len(await query_zcl.select_all_clusters(db, existing["id"]))
        logger.info(f"♻️  ZCL package {existing['id']} already loaded from {path.name}")
        return ZclContext(
            path=str(path),
            crc=context["crc"],
            package_id=existing["id"],
            version=existing["version"],
            cluster_count=cluster_count,
        )

    version = metadata.get("version")
    if existing is not None:
        package_id = existing["id"]
        logger.warning(f"ZCL metafile {path.name} changed, reloading package {package_id}")
        await query_zcl.delete_package_entities(db, package_id)
        await query_package.update_path_crc(db, str(path), context["crc"])
    else:
        package_id = await query_package.insert_path_crc(
            db,
            str(path),
            context["crc"],
            PackageType.ZCL_PROPERTIES.value,
            version=version,
            description=metadata.get("description"),
        )

    atomics = [
        {**atomic, "id": parse_int(atomic.get("id")), "size": parse_int(atomic.get("size"))}
        for atomic in metadata.get("atomics", [])
    ]
    await query_zcl.insert_atomics(db, package_id, atomics)
    clusters = metadata.get("clusters", [])
    for cluster in clusters:
        await _load_cluster(db, package_id, cluster)

    logger.info(
        f"✅ Loaded ZCL package {package_id} from {path.name}: "
        f"{len(clusters)} clusters, {len(atomics)} atomics"
    )
    return ZclContext(
        path=str(path),
        crc=context["crc"],
        package_id=package_id,
        version=version,
        cluster_count=len(clusters),
    )


async def _load_cluster(db: SqliteConnectionPool, package_id: int, cluster: Dict[str, Any]) -> None:
    cluster_mfg = parse_int(cluster.get("manufacturerCode"))
    cluster_id = await query_zcl.insert_cluster(
        db,
        package_id,
        code=parse_int(cluster["code"]),
        name=cluster["name"],
        manufacturer_code=cluster_mfg,
        description=cluster.get("description"),
        define=cluster.get("define"),
        domain=cluster.get("domain"),
    )

    for command in cluster.get("commands", []):
        await query_zcl.insert_command(
            db,
            package_id,
            cluster_id,
            code=parse_int(command["code"]),
            name=command["name"],
            source=str(command.get("source", "")).lower() or None,
            manufacturer_code=parse_int(command.get("manufacturerCode")),
            description=command.get("description"),
            is_optional=bool(command.get("optional", False)),
        )

    for attribute in cluster.get("attributes", []):
        await query_zcl.insert_attribute(
            db,
            package_id,
            cluster_id,
            code=parse_int(attribute["code"]),
            name=attribute["name"],
            type=str(attribute.get("type", "")).lower(),
            side=str(attribute.get("side", Side.SERVER.value)).lower(),
            manufacturer_code=parse_int(attribute.get("manufacturerCode")),
            define=attribute.get("define"),
            min=attribute.get("min"),
            max=attribute.get("max"),
            max_length=parse_int(attribute.get("length")),
            is_writable=bool(attribute.get("writable", False)),
            default_value=attribute.get("default"),
            is_optional=bool(attribute.get("optional", False)),
            is_reportable=bool(attribute.get("reportable", False)),
        )
