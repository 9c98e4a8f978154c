"""Records describing the database's global variables."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from gelxgen.errors import GelxCoreError

GLOBALS_QUERY = (
    "select schema::Global {id, name, cardinality, target: {id, name, is_from_alias}}"
)


class SchemaCardinality(enum.StrEnum):
    ONE = "One"
    MANY = "Many"


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise GelxCoreError(f"missing field `{key}`") from None


def _uuid(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as error:
        raise GelxCoreError(error) from error


@dataclass(frozen=True)
class GlobalsTarget:
    id: UUID
    name: str
    is_from_alias: bool | None = None


@dataclass(frozen=True)
class GlobalsOutput:
    """A global variable and the type it holds."""

    id: UUID
    name: str
    cardinality: SchemaCardinality | None = None
    target: GlobalsTarget | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GlobalsOutput:
        """Build a record from its decoded JSON form."""
        raw_cardinality = data.get("cardinality")
        try:
            cardinality = None if raw_cardinality is None else SchemaCardinality(raw_cardinality)
        except ValueError:
            raise GelxCoreError(f"unknown cardinality `{raw_cardinality}`") from None

        raw_target = data.get("target")
        target = None
        if raw_target is not None:
            target = GlobalsTarget(
                id=_uuid(_field(raw_target, "id")),
                name=_field(raw_target, "name"),
                is_from_alias=raw_target.get("is_from_alias"),
            )

        return cls(
            id=_uuid(_field(data, "id")),
            name=_field(data, "name"),
            cardinality=cardinality,
            target=target,
        )