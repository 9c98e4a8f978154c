"""Mapping of built-in scalar type ids to Rust types, and path helpers."""

from __future__ import annotations

import os
from pathlib import Path
from uuid import UUID

from gelxgen.errors import GelxCoreError


def _base(value: int) -> UUID:
    return UUID(int=value)


STD_UUID = _base(0x100)
STD_STR = _base(0x101)
STD_BYTES = _base(0x102)
STD_INT16 = _base(0x103)
STD_INT32 = _base(0x104)
STD_INT64 = _base(0x105)
STD_FLOAT32 = _base(0x106)
STD_FLOAT64 = _base(0x107)
STD_DECIMAL = _base(0x108)
STD_BOOL = _base(0x109)
STD_DATETIME = _base(0x10A)
CAL_LOCAL_DATETIME = _base(0x10B)
CAL_LOCAL_DATE = _base(0x10C)
CAL_LOCAL_TIME = _base(0x10D)
STD_DURATION = _base(0x10E)
STD_JSON = _base(0x10F)
STD_BIGINT = _base(0x110)
CAL_RELATIVE_DURATION = _base(0x111)
CAL_DATE_DURATION = _base(0x112)
CFG_MEMORY = _base(0x130)
STD_PG_JSON = _base(0x1000001)
STD_PG_TIMESTAMPTZ = _base(0x1000002)
STD_PG_TIMESTAMP = _base(0x1000003)
STD_PG_DATE = _base(0x1000004)
PGVECTOR_VECTOR = UUID("9565dd88-04f5-11ee-a691-0b6ebe179825")
POSTGIS_GEOMETRY = UUID("44c901c0-d922-4894-83c8-061bd05e4840")
POSTGIS_GEOGRAPHY = UUID("4d738878-3a5f-4821-ab76-9d8e7d6b32c4")

# Type names: a leading "::" means the name is relative to the exports alias.
_TOKEN_NAMES: dict[UUID, str] = {
    STD_UUID: "::uuid::Uuid",
    STD_STR: "String",
    STD_BYTES: "::bytes::Bytes",
    STD_INT16: "i16",
    STD_INT32: "i32",
    STD_INT64: "i64",
    STD_FLOAT32: "f32",
    STD_FLOAT64: "f64",
    STD_DECIMAL: "::BigDecimal",
    STD_BOOL: "bool",
    STD_DATETIME: "::DateTime",
    STD_PG_TIMESTAMPTZ: "::DateTime",
    CAL_LOCAL_DATETIME: "::NaiveDateTime",
    STD_PG_TIMESTAMP: "::NaiveDateTime",
    CAL_LOCAL_DATE: "::NaiveDate",
    STD_PG_DATE: "::NaiveDate",
    CAL_LOCAL_TIME: "::NaiveTime",
    STD_DURATION: "::gel_protocol::model::Duration",
    CAL_RELATIVE_DURATION: "::gel_protocol::model::RelativeDuration",
    CAL_DATE_DURATION: "::gel_protocol::model::DateDuration",
    STD_JSON: "::gel_protocol::model::Json",
    STD_PG_JSON: "::gel_protocol::model::Json",
    STD_BIGINT: "::BigIntAlias",
    CFG_MEMORY: "::gel_protocol::model::ConfigMemory",
    PGVECTOR_VECTOR: "::gel_protocol::model::Vector",
    POSTGIS_GEOMETRY: "::Geometry",
    POSTGIS_GEOGRAPHY: "::Geography",
}

_IMPORT_NAMES: dict[UUID, str] = {
    STD_UUID: "STD_UUID",
    STD_STR: "STD_STR",
    STD_BYTES: "STD_BYTES",
    STD_INT16: "STD_INT16",
    STD_INT32: "STD_INT32",
    STD_INT64: "STD_INT64",
    STD_FLOAT32: "STD_FLOAT32",
    STD_FLOAT64: "STD_FLOAT64",
    STD_DECIMAL: "STD_DECIMAL",
    STD_BOOL: "STD_BOOL",
    STD_DATETIME: "STD_DATETIME",
    STD_PG_TIMESTAMPTZ: "STD_DATETIME",
    CAL_LOCAL_DATETIME: "CAL_LOCAL_DATETIME",
    STD_PG_TIMESTAMP: "CAL_LOCAL_DATETIME",
    CAL_LOCAL_DATE: "CAL_LOCAL_DATE",
    STD_PG_DATE: "CAL_LOCAL_DATE",
    CAL_LOCAL_TIME: "CAL_LOCAL_TIME",
    STD_DURATION: "STD_DURATION",
    CAL_RELATIVE_DURATION: "CAL_RELATIVE_DURATION",
    CAL_DATE_DURATION: "CAL_DATE_DURATION",
    STD_JSON: "STD_JSON",
    STD_PG_JSON: "STD_JSON",
    STD_BIGINT: "STD_BIGINT",
    CFG_MEMORY: "CFG_MEMORY",
    PGVECTOR_VECTOR: "PGVECTOR_VECTOR",
    POSTGIS_GEOMETRY: "POSTGIS_GEOMETRY",
    POSTGIS_GEOGRAPHY: "POSTGIS_GEOGRAPHY",
}


def _as_uuid(value: UUID | str) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def maybe_uuid_to_token_name(uuid: UUID | str, exports_ident: str) -> str | None:
    """The Rust type for a built-in scalar id, or ``None`` if unknown."""
    name = _TOKEN_NAMES.get(_as_uuid(uuid))
    if name is None:
        return None
    return f"{exports_ident}{name}" if name.startswith("::") else name


def uuid_to_token_name(uuid: UUID | str, exports_ident: str) -> str:
    """The Rust type for a scalar id, falling back to the generic value type."""
    name = maybe_uuid_to_token_name(uuid, exports_ident)
    if name is None:
        return f"{exports_ident}::gel_protocol::value::Value"
    return name


def maybe_uuid_to_import(uuid: UUID | str, exports_ident: str) -> str | None:
    """The path of the codec constant for a built-in scalar id, if known."""
    name = _IMPORT_NAMES.get(_as_uuid(uuid))
    if name is None:
        return None
    return f"{exports_ident}::gel_protocol::codec::{name}"


def resolve_path(path: str | os.PathLike[str]) -> Path:
    """Resolve a query path against the crate manifest directory."""
    raw = os.fspath(path)
    if os.path.isabs(raw):
        raise GelxCoreError("absolute paths will only work on the current machine")
    if not os.path.dirname(raw):
        raise GelxCoreError(
            "paths relative to the current file's directory are not currently supported"
        )
    base_dir = os.environ.get("CARGO_MANIFEST_DIR")
    if base_dir is None:
        raise GelxCoreError("CARGO_MANIFEST_DIR is not set; please use Cargo to build")
    return Path(base_dir) / raw