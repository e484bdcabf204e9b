"""
Project file importer.

Reads a `.zap` JSON project into a new session:

    {
      "keyValuePairs": [{"key": "manufacturerCodes", "value": "0x1002"}],
      "endpointTypes": [
        {
          "name": "Light", "deviceTypeName": "HA-onoff", "deviceTypeCode": 256,
          "clusters": [
            {
              "code": 6, "mfgCode": null, "side": "server", "enabled": 1,
              "commands": [{"code": 0, "mfgCode": null, "source": "client",
                            "incoming": 1, "outgoing": 0}],
              "attributes": [{"code": 0, "mfgCode": null, "side": "server",
                              "included": 1, "storageOption": "RAM",
                              "defaultValue": "0x00", "reportable": 1}]
            }
          ]
        }
      ],
      "endpoints": [{"endpointTypeIndex": 0, "endpointId": 1, "profileId": 260,
                     "networkId": 0, "deviceIdentifier": 256, "endpointVersion": 1}]
    }
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from zapgen.connectors.sqlite_pool import SqliteConnectionPool
from zapgen.db import query_config, query_package, query_session, query_zcl
from zapgen.exceptions import ImportDataError, PackageNotFoundError
from zapgen.models.db_enum import PackageType, Side
from zapgen.models.generation import ImportResult
from zapgen.util import initialize_session_package, parse_int

logger = logging.getLogger(__name__)


async def import_data_from_file(
    db: SqliteConnectionPool,
    path: str,
    zcl_package_id: Optional[int] = None,
) -> ImportResult:
    """
    Import a .zap project file into a new session.

    Args:
        db: Connection pool
        path: Project file path
        zcl_package_id: ZCL package to assign to the session. When omitted the
            loaded ZCL package is picked by `initialize_session_package`.

    Returns:
        ImportResult with the new session id

    Raises:
        ImportDataError: the file is unreadable or references an unknown cluster
        PackageNotFoundError: no ZCL package is available for the session
    """
    file_path = Path(path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ImportDataError(f"Cannot read project file {file_path}: {e}") from e

    session_id = await query_session.create_session(db)
    try:
        package_id, endpoint_type_ids = await _import_session(db, session_id, data, zcl_package_id)
    except Exception:
        logger.warning(f"Import of {file_path.name} failed, removing session {session_id}")
        await query_session.delete_session(db, session_id)
        raise

    logger.info(
        f"📥 Imported {file_path.name} into session {session_id}: "
        f"{len(endpoint_type_ids)} endpoint types, {len(data.get('endpoints', []))} endpoints"
    )
    return ImportResult(
        session_id=session_id,
        zcl_package_id=package_id,
        endpoint_type_ids=endpoint_type_ids,
    )


async def _import_session(
    db: SqliteConnectionPool,
    session_id: int,
    data: Dict[str, Any],
    zcl_package_id: Optional[int],
) -> Tuple[int, List[int]]:
    if zcl_package_id is not None:
        await query_package.insert_session_package(db, session_id, zcl_package_id, required=True)
    else:
        await initialize_session_package(db, session_id)

    packages = await query_package.get_session_packages_by_type(
        db, session_id, PackageType.ZCL_PROPERTIES.value
    )
    if not packages:
        raise PackageNotFoundError(f"No ZCL package available for session {session_id}")
    package_id = packages[0]["id"]

    for pair in data.get("keyValuePairs", []):
        await query_session.update_session_key_value(db, session_id, pair["key"], pair.get("value"))

    endpoint_type_ids: List[int] = []
    for endpoint_type in data.get("endpointTypes", []):
        endpoint_type_ids.append(
            await _import_endpoint_type(db, session_id, package_id, endpoint_type)
        )

    for endpoint in data.get("endpoints", []):
        index = endpoint.get("endpointTypeIndex")
        if index is None or not 0 <= int(index) < len(endpoint_type_ids):
            raise ImportDataError(
                f"Endpoint {endpoint.get('endpointId')} references unknown endpoint type {index}"
            )
        await query_config.insert_endpoint(
            db,
            session_id,
            endpoint_type_ids[int(index)],
            parse_int(endpoint.get("endpointId")),
            profile=parse_int(endpoint.get("profileId")),
            network_identifier=parse_int(endpoint.get("networkId")),
            device_identifier=parse_int(endpoint.get("deviceIdentifier")),
            device_version=parse_int(endpoint.get("endpointVersion")),
        )

    return package_id, endpoint_type_ids


async def _import_endpoint_type(
    db: SqliteConnectionPool,
    session_id: int,
    package_id: int,
    endpoint_type: Dict[str, Any],
) -> int:
    endpoint_type_id = await query_config.insert_endpoint_type(
        db,
        session_id,
        endpoint_type.get("name"),
        parse_int(endpoint_type.get("deviceTypeCode")),
        endpoint_type.get("deviceTypeName"),
    )

    for cluster in endpoint_type.get("clusters", []):
        code = parse_int(cluster.get("code"))
        mfg_code = parse_int(cluster.get("mfgCode"))
        row = await query_zcl.select_cluster_by_code(db, package_id, code, mfg_code)
        if row is None:
            raise ImportDataError(
                f"Unknown cluster {cluster.get('name') or code} (code: {code}, mfgCode: {mfg_code}) "
                f"in endpoint type {endpoint_type.get('name')}"
            )

        side = str(cluster.get("side", Side.SERVER.value)).lower()
        endpoint_cluster_id = await query_config.insert_endpoint_type_cluster(
            db, endpoint_type_id, row["id"], side, bool(cluster.get("enabled", True))
        )

        for attribute in cluster.get("attributes", []):
            await _import_attribute(db, package_id, endpoint_type_id, endpoint_cluster_id, row, attribute)

        for command in cluster.get("commands", []):
            await _import_command(db, package_id, endpoint_type_id, endpoint_cluster_id, row, command)

    return endpoint_type_id


async def _import_attribute(
    db: SqliteConnectionPool,
    package_id: int,
    endpoint_type_id: int,
    endpoint_cluster_id: int,
    cluster: Dict[str, Any],
    attribute: Dict[str, Any],
) -> None:
    code = parse_int(attribute.get("code"))
    row = await query_zcl.select_attribute_by_code(
        db,
        package_id,
        cluster["id"],
        code,
        parse_int(attribute.get("mfgCode")),
        attribute.get("side"),
    )
    if row is None:
        logger.warning(f"Skipping unknown attribute {code} of cluster {cluster['name']}")
        return

    await query_config.insert_endpoint_type_attribute(
        db,
        endpoint_type_id,
        endpoint_cluster_id,
        row["id"],
        included=bool(attribute.get("included", True)),
        storage_option=attribute.get("storageOption"),
        singleton=bool(attribute.get("singleton", False)),
        bounded=bool(attribute.get("bounded", False)),
        default_value=attribute.get("defaultValue", row["default_value"]),
        included_reportable=bool(attribute.get("reportable", False)),
        min_interval=parse_int(attribute.get("minInterval", 1)),
        max_interval=parse_int(attribute.get("maxInterval", 65534)),
        reportable_change=parse_int(attribute.get("reportableChange", 0)),
    )


async def _import_command(
    db: SqliteConnectionPool,
    package_id: int,
    endpoint_type_id: int,
    endpoint_cluster_id: int,
    cluster: Dict[str, Any],
    command: Dict[str, Any],
) -> None:
    code = parse_int(command.get("code"))
    source = command.get("source")
    row = await query_zcl.select_command_by_code(
        db,
        package_id,
        cluster["id"],
        code,
        parse_int(command.get("mfgCode")),
        str(source).lower() if source else None,
    )
    if row is None:
        logger.warning(f"Skipping unknown command {code} of cluster {cluster['name']}")
        return

    await query_config.insert_endpoint_type_command(
        db,
        endpoint_type_id,
        endpoint_cluster_id,
        row["id"],
        incoming=bool(command.get("incoming", False)),
        outgoing=bool(command.get("outgoing", False)),
    )
