from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

pytestmark = pytest.mark.asyncio


def _write_json(path: Path, data: dict) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


async def test_load_zcl_creates_package_with_clusters(db, resources) -> None:
    from zapgen.db import query_package, query_zcl
    from zapgen.zcl.zcl_loader import load_zcl

    ctx = await load_zcl(db, str(resources / "zcl.json"))

    assert ctx.cluster_count == 5
    assert ctx.version == "ZCL Test Data"
    package = await query_package.get_package_by_id(db, ctx.package_id)
    assert package["type"] == "zclProperties"
    assert package["crc"] == ctx.crc

    clusters = await query_zcl.select_all_clusters(db, ctx.package_id)
    assert [c["name"] for c in clusters][:3] == ["Basic", "On/off", "Level Control"]

    on_off = await query_zcl.select_cluster_by_code(db, ctx.package_id, 6)
    assert on_off["define"] == "ON_OFF_CLUSTER"
    mfg = await query_zcl.select_cluster_by_code(db, ctx.package_id, 0xFC00, 0x1002)
    assert mfg["name"] == "Sample Mfg Specific Cluster"
    assert await query_zcl.select_cluster_by_code(db, ctx.package_id, 0xFC00) is None

    off = await query_zcl.select_command_by_code(db, ctx.package_id, on_off["id"], 0, None, "client")
    mfg_off = await query_zcl.select_command_by_code(db, ctx.package_id, on_off["id"], 0, 0x1002, "client")
    assert off["name"] == "Off"
    assert mfg_off["name"] == "SampleMfgSpecificOffWithTransition"


async def test_load_zcl_twice_reuses_package(db, resources) -> None:
    from zapgen.db import query_package
    from zapgen.zcl.zcl_loader import load_zcl

    first = await load_zcl(db, str(resources / "zcl.json"))
    second = await load_zcl(db, str(resources / "zcl.json"))

    assert second.package_id == first.package_id
    assert second.crc == first.crc
    assert second.cluster_count == first.cluster_count
    assert len(await query_package.get_packages_by_type(db, "zclProperties")) == 1


async def test_load_zcl_reloads_changed_file(db, resources, tmp_path) -> None:
    from zapgen.db import query_zcl
    from zapgen.zcl.zcl_loader import load_zcl

    data = json.loads((resources / "zcl.json").read_text(encoding="utf-8"))
    metafile = _write_json(tmp_path / "zcl.json", data)
    first = await load_zcl(db, str(metafile))

    data["clusters"] = data["clusters"][:2]
    _write_json(metafile, data)
    second = await load_zcl(db, str(metafile))

    assert second.package_id == first.package_id
    assert second.crc != first.crc
    assert second.cluster_count == 2
    assert len(await query_zcl.select_all_clusters(db, second.package_id)) == 2


async def test_load_zcl_missing_or_invalid_file(db, tmp_path) -> None:
    from zapgen.exceptions import ZapGenError
    from zapgen.zcl.zcl_loader import load_zcl

    with pytest.raises(ZapGenError, match="not found"):
        await load_zcl(db, str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{ not json", encoding="utf-8")
    with pytest.raises(ZapGenError, match="Invalid ZCL metafile"):
        await load_zcl(db, str(broken))


async def test_load_templates_stores_children_and_options(db, resources) -> None:
    from zapgen.db import query_package
    from zapgen.generator.generation_engine import load_templates

    ctx = await load_templates(db, resources / "templates" / "gen-templates.json")

    package = await query_package.get_package_by_id(db, ctx.package_id)
    assert package["type"] == "genTemplateJson"
    assert package["version"] == "unit-test"
    assert package["description"] == "Unit test templates"

    children = await query_package.get_packages_by_parent(db, ctx.package_id)
    assert [c["type"] for c in children] == ["genSingleTemplate"] * 3
    assert [c["description"] for c in children] == ["Endpoint listing", "CLI commands", "Failing template"]
    assert ctx.template_package_ids == [c["id"] for c in children]

    options = await query_package.select_all_options_values(db, ctx.package_id, "cli")
    assert [o["option_code"] for o in options] == ["on", "off", "toggle"]
    types = await query_package.select_specific_option_value(db, ctx.package_id, "types", "int8u")
    assert types["option_label"] == "uint8_t"

    again = await load_templates(db, resources / "templates" / "gen-templates.json")
    assert again.package_id == ctx.package_id
    assert again.template_package_ids == ctx.template_package_ids


async def test_load_templates_missing_template_file(db, tmp_path) -> None:
    from zapgen.exceptions import ZapGenError
    from zapgen.generator.generation_engine import load_templates

    metafile = _write_json(
        tmp_path / "gen-templates.json",
        {"name": "Broken", "version": "1", "templates": [{"path": "nope.zapt", "output": "nope.out"}]},
    )
    with pytest.raises(ZapGenError, match="Template not found"):
        await load_templates(db, metafile)


async def test_import_creates_session(loaded) -> None:
    from zapgen.db import query_config, query_impexp, query_package, query_session

    db = loaded.db
    assert len(loaded.endpoint_type_ids) == 3
    assert await query_config.select_endpoint_type_count(db, loaded.session_id) == 3
    assert await query_session.get_session_key_value(db, loaded.session_id, "manufacturerCodes") == "0x1002"

    zcl_packages = await query_package.get_session_packages_by_type(db, loaded.session_id, "zclProperties")
    assert [p["id"] for p in zcl_packages] == [loaded.zcl_package_id]

    endpoints = await query_impexp.export_endpoints(db, loaded.session_id, loaded.endpoint_type_ids)
    assert [e["endpoint_id"] for e in endpoints] == [0, 1, 2]
    assert [e["endpoint_type_ref"] for e in endpoints] == loaded.endpoint_type_ids
    assert endpoints[1]["profile_id"] == 260

    light = loaded.endpoint_type_ids[1]
    clusters = await query_impexp.export_clusters_from_endpoint_type(db, light)
    assert [c["name"] for c in clusters] == ["Basic", "On/off", "Level Control"]
    on_off = clusters[1]
    commands = await query_impexp.export_commands_from_endpoint_type_cluster(
        db, light, on_off["endpoint_cluster_id"]
    )
    assert [c["name"] for c in commands] == ["Off", "SampleMfgSpecificOffWithTransition", "On", "Toggle"]


async def test_import_skips_unknown_attribute(db, resources, tmp_path, caplog) -> None:
    from zapgen.db import query_impexp
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    await load_zcl(db, str(resources / "zcl.json"))
    project = {
        "endpointTypes": [
            {
                "name": "Odd",
                "clusters": [
                    {
                        "code": 6,
                        "side": "server",
                        "enabled": 1,
                        "attributes": [{"code": "0x4242", "side": "server", "included": 1}],
                    }
                ],
            }
        ],
        "endpoints": [],
    }
    zap = _write_json(tmp_path / "odd.zap", project)

    with caplog.at_level(logging.WARNING):
        result = await import_data_from_file(db, str(zap))

    assert "Skipping unknown attribute" in caplog.text
    clusters = await query_impexp.export_clusters_from_endpoint_type(db, result.endpoint_type_ids[0])
    attributes = await query_impexp.export_attributes_from_endpoint_type_cluster(
        db, result.endpoint_type_ids[0], clusters[0]["endpoint_cluster_id"]
    )
    assert attributes == []


async def test_import_unknown_cluster_fails(db, resources, tmp_path) -> None:
    from zapgen.exceptions import ImportDataError
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    await load_zcl(db, str(resources / "zcl.json"))
    zap = _write_json(
        tmp_path / "unknown.zap",
        {"endpointTypes": [{"name": "X", "clusters": [{"code": "0x9999", "name": "Mystery"}]}]},
    )
    with pytest.raises(ImportDataError, match="Mystery"):
        await import_data_from_file(db, str(zap))


async def test_import_bad_endpoint_type_index(db, resources, tmp_path) -> None:
    from zapgen.exceptions import ImportDataError
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    await load_zcl(db, str(resources / "zcl.json"))
    zap = _write_json(
        tmp_path / "bad-index.zap",
        {"endpointTypes": [], "endpoints": [{"endpointTypeIndex": 3, "endpointId": 1}]},
    )
    with pytest.raises(ImportDataError, match="unknown endpoint type"):
        await import_data_from_file(db, str(zap))


async def test_import_without_zcl_package(db, resources, caplog) -> None:
    from zapgen.exceptions import PackageNotFoundError
    from zapgen.importexport.importer import import_data_from_file

    with caplog.at_level(logging.ERROR):
        with pytest.raises(PackageNotFoundError):
            await import_data_from_file(db, str(resources / "three-endpoint-device.zap"))
    assert "No package found for session." in caplog.text


async def _row_counts(db) -> tuple:
    sessions = await db.fetch_val("SELECT COUNT(1) FROM SESSION")
    endpoint_types = await db.fetch_val("SELECT COUNT(1) FROM ENDPOINT_TYPE")
    clusters = await db.fetch_val("SELECT COUNT(1) FROM ENDPOINT_TYPE_CLUSTER")
    return sessions, endpoint_types, clusters


async def test_failed_import_leaves_no_session_behind(db, resources, tmp_path, caplog) -> None:
    from zapgen.exceptions import ImportDataError
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    await load_zcl(db, str(resources / "zcl.json"))
    project = json.loads((resources / "three-endpoint-device.zap").read_text(encoding="utf-8"))
    project["endpoints"].append({"endpointTypeIndex": 99, "endpointId": 7})
    zap = _write_json(tmp_path / "dangling.zap", project)

    with caplog.at_level(logging.WARNING):
        with pytest.raises(ImportDataError, match="unknown endpoint type 99"):
            await import_data_from_file(db, str(zap))

    assert "removing session" in caplog.text
    assert await _row_counts(db) == (0, 0, 0)
    assert await db.fetch_val("SELECT COUNT(1) FROM SESSION_KEY_VALUE") == 0
    assert await db.fetch_val("SELECT COUNT(1) FROM SESSION_PACKAGE") == 0


async def test_unknown_cluster_import_leaves_earlier_sessions_alone(loaded, tmp_path) -> None:
    from zapgen.exceptions import ImportDataError
    from zapgen.importexport.importer import import_data_from_file

    before = await _row_counts(loaded.db)
    zap = _write_json(
        tmp_path / "unknown.zap",
        {
            "endpointTypes": [
                {"name": "Ok", "clusters": [{"code": 6, "side": "server"}]},
                {"name": "Bad", "clusters": [{"code": "0x9999", "name": "Mystery"}]},
            ]
        },
    )
    with pytest.raises(ImportDataError, match="Mystery"):
        await import_data_from_file(loaded.db, str(zap), zcl_package_id=loaded.zcl_package_id)

    assert await _row_counts(loaded.db) == before
    assert before[0] == 1


async def test_import_uses_the_single_loaded_zcl_package(db, resources, caplog) -> None:
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    zcl = await load_zcl(db, str(resources / "zcl.json"))
    with caplog.at_level(logging.INFO):
        result = await import_data_from_file(db, str(resources / "three-endpoint-device.zap"))

    assert result.zcl_package_id == zcl.package_id
    assert f"Single package found, using it for the session: {zcl.package_id}" in caplog.text


async def test_import_with_several_zcl_packages_uses_the_first(db, resources, tmp_path, caplog) -> None:
    from zapgen.db import query_package
    from zapgen.importexport.importer import import_data_from_file
    from zapgen.zcl.zcl_loader import load_zcl

    first = await load_zcl(db, str(resources / "zcl.json"))
    copy = tmp_path / "zcl-copy.json"
    copy.write_text((resources / "zcl.json").read_text(encoding="utf-8"), encoding="utf-8")
    second = await load_zcl(db, str(copy))
    assert second.package_id != first.package_id

    with caplog.at_level(logging.WARNING):
        result = await import_data_from_file(db, str(resources / "three-endpoint-device.zap"))

    assert f"Multiple toplevel packages found. Using the first one: {first.package_id}" in caplog.text
    assert result.zcl_package_id == first.package_id
    packages = await query_package.get_session_packages_by_type(db, result.session_id, "zclProperties")
    assert [p["id"] for p in packages] == [first.package_id]
