from pathlib import Path
from uuid import UUID

import pytest

from gelxgen import utils
from gelxgen.errors import GelxCoreError
from gelxgen.utils import (
    maybe_uuid_to_import,
    maybe_uuid_to_token_name,
    resolve_path,
    uuid_to_token_name,
)

TOKEN_CASES = [
    (utils.STD_UUID, "exports::uuid::Uuid"),
    (utils.STD_STR, "String"),
    (utils.STD_BYTES, "exports::bytes::Bytes"),
    (utils.STD_INT16, "i16"),
    (utils.STD_INT32, "i32"),
    (utils.STD_INT64, "i64"),
    (utils.STD_FLOAT32, "f32"),
    (utils.STD_FLOAT64, "f64"),
    (utils.STD_DECIMAL, "exports::BigDecimal"),
    (utils.STD_BOOL, "bool"),
    (utils.STD_DATETIME, "exports::DateTime"),
    (utils.STD_PG_TIMESTAMPTZ, "exports::DateTime"),
    (utils.CAL_LOCAL_DATETIME, "exports::NaiveDateTime"),
    (utils.STD_PG_TIMESTAMP, "exports::NaiveDateTime"),
    (utils.CAL_LOCAL_DATE, "exports::NaiveDate"),
    (utils.STD_PG_DATE, "exports::NaiveDate"),
    (utils.CAL_LOCAL_TIME, "exports::NaiveTime"),
    (utils.STD_DURATION, "exports::gel_protocol::model::Duration"),
    (utils.CAL_RELATIVE_DURATION, "exports::gel_protocol::model::RelativeDuration"),
    (utils.CAL_DATE_DURATION, "exports::gel_protocol::model::DateDuration"),
    (utils.STD_JSON, "exports::gel_protocol::model::Json"),
    (utils.STD_PG_JSON, "exports::gel_protocol::model::Json"),
    (utils.STD_BIGINT, "exports::BigIntAlias"),
    (utils.CFG_MEMORY, "exports::gel_protocol::model::ConfigMemory"),
    (utils.PGVECTOR_VECTOR, "exports::gel_protocol::model::Vector"),
    (utils.POSTGIS_GEOMETRY, "exports::Geometry"),
    (utils.POSTGIS_GEOGRAPHY, "exports::Geography"),
]

IMPORT_CASES = [
    (utils.STD_UUID, "STD_UUID"),
    (utils.STD_STR, "STD_STR"),
    (utils.STD_BYTES, "STD_BYTES"),
    (utils.STD_INT16, "STD_INT16"),
    (utils.STD_INT32, "STD_INT32"),
    (utils.STD_INT64, "STD_INT64"),
    (utils.STD_FLOAT32, "STD_FLOAT32"),
    (utils.STD_FLOAT64, "STD_FLOAT64"),
    (utils.STD_DECIMAL, "STD_DECIMAL"),
    (utils.STD_BOOL, "STD_BOOL"),
    (utils.STD_DATETIME, "STD_DATETIME"),
    (utils.STD_PG_TIMESTAMPTZ, "STD_DATETIME"),
    (utils.CAL_LOCAL_DATETIME, "CAL_LOCAL_DATETIME"),
    (utils.STD_PG_TIMESTAMP, "CAL_LOCAL_DATETIME"),
    (utils.CAL_LOCAL_DATE, "CAL_LOCAL_DATE"),
    (utils.STD_PG_DATE, "CAL_LOCAL_DATE"),
    (utils.CAL_LOCAL_TIME, "CAL_LOCAL_TIME"),
    (utils.STD_DURATION, "STD_DURATION"),
    (utils.CAL_RELATIVE_DURATION, "CAL_RELATIVE_DURATION"),
    (utils.CAL_DATE_DURATION, "CAL_DATE_DURATION"),
    (utils.STD_JSON, "STD_JSON"),
    (utils.STD_PG_JSON, "STD_JSON"),
    (utils.STD_BIGINT, "STD_BIGINT"),
    (utils.CFG_MEMORY, "CFG_MEMORY"),
    (utils.PGVECTOR_VECTOR, "PGVECTOR_VECTOR"),
    (utils.POSTGIS_GEOMETRY, "POSTGIS_GEOMETRY"),
    (utils.POSTGIS_GEOGRAPHY, "POSTGIS_GEOGRAPHY"),
]


@pytest.mark.parametrize(("uuid", "expected"), TOKEN_CASES)
def test_maybe_uuid_to_token_name(uuid, expected):
    result = maybe_uuid_to_token_name(uuid, "exports")
    assert expected in result.replace(" ", "")


def test_maybe_uuid_to_token_name_none():
    assert maybe_uuid_to_token_name(UUID(int=0), "exports") is None


def test_maybe_uuid_to_token_name_accepts_string():
    assert maybe_uuid_to_token_name(str(utils.STD_STR), "exports") == "String"


@pytest.mark.parametrize(("uuid", "expected"), TOKEN_CASES)
def test_uuid_to_token_name_matches_known(uuid, expected):
    assert uuid_to_token_name(uuid, "exports") == maybe_uuid_to_token_name(uuid, "exports")


def test_uuid_to_token_name_fallback():
    result = uuid_to_token_name(UUID(int=0), "exports")
    assert result == "exports::gel_protocol::value::Value"


@pytest.mark.parametrize(("uuid", "expected"), IMPORT_CASES)
def test_maybe_uuid_to_import(uuid, expected):
    result = maybe_uuid_to_import(uuid, "exports")
    assert expected in result.replace(" ", "")
    assert result.startswith("exports::gel_protocol::codec::")


def test_maybe_uuid_to_import_none():
    assert maybe_uuid_to_import(UUID(int=0), "exports") is None


def test_resolve_path_rejects_absolute(monkeypatch, tmp_path):
    monkeypatch.setenv("CARGO_MANIFEST_DIR", str(tmp_path))
    with pytest.raises(GelxCoreError, match="absolute paths"):
        resolve_path(tmp_path / "queries" / "a.edgeql")


def test_resolve_path_rejects_bare_file(monkeypatch, tmp_path):
    monkeypatch.setenv("CARGO_MANIFEST_DIR", str(tmp_path))
    with pytest.raises(GelxCoreError, match="relative to the current file"):
        resolve_path("insert_user.edgeql")


def test_resolve_path_requires_manifest_dir(monkeypatch):
    monkeypatch.delenv("CARGO_MANIFEST_DIR", raising=False)
    with pytest.raises(GelxCoreError, match="CARGO_MANIFEST_DIR"):
        resolve_path("queries/insert_user.edgeql")


def test_resolve_path_joins_manifest_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("CARGO_MANIFEST_DIR", str(tmp_path))
    result = resolve_path("queries/insert_user.edgeql")
    assert result == Path(tmp_path) / "queries" / "insert_user.edgeql"