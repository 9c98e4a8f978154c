"""Schema type records as fetched from the database, and their typed model."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from gelxgen.errors import GelxCoreError


class Cardinality(enum.Enum):
    """How many values a pointer or result may hold."""

    NO_RESULT = "NoResult"
    AT_MOST_ONE = "AtMostOne"
    ONE = "One"
    MANY = "Many"
    AT_LEAST_ONE = "AtLeastOne"


def to_cardinality(cardinality: str | None) -> Cardinality:
    """Map a cardinality name to its value; unknown or missing means no result."""
    if cardinality is None:
        return Cardinality.NO_RESULT
    try:
        return Cardinality(cardinality)
    except ValueError:
        return Cardinality.NO_RESULT


class PointerKind(enum.Enum):
    LINK = "link"
    PROPERTY = "property"


class PointerFlags(enum.Flag):
    IS_EXCLUSIVE = 0b0000_0001
    IS_COMPUTED = 0b0000_0010
    IS_READONLY = 0b0000_0100
    HAS_DEFAULT = 0b0000_1000


class TypeKind(enum.Enum):
    OBJECT = "object"
    SCALAR = "scalar"
    ARRAY = "array"
    TUPLE = "tuple"
    RANGE = "range"
    MULTI_RANGE = "multirange"


@dataclass(frozen=True)
class IdRef:
    """A reference to another type by id."""

    id: UUID


@dataclass
class PointersSetPointersSet:
    """A link property as fetched."""

    card: str | None
    name: str
    target_id: UUID | None
    kind: str
    is_computed: bool | None = None
    is_readonly: bool | None = None

    def cardinality(self) -> Cardinality:
        return to_cardinality(self.card)


@dataclass
class PointersSet:
    """A pointer of an object type as fetched."""

    card: str | None
    name: str
    target_id: UUID | None
    kind: str
    is_exclusive: bool = False
    is_computed: bool | None = None
    is_readonly: bool | None = None
    has_default: bool = False
    pointers: list[PointersSetPointersSet] = field(default_factory=list)

    def cardinality(self) -> Cardinality:
        return to_cardinality(self.card)


@dataclass
class ExclusivesSet:
    target: str | None = None


@dataclass
class BacklinksSet:
    card: str
    name: str
    stub: str
    target_id: UUID | None
    kind: str
    is_exclusive: bool | None = None

    def cardinality(self) -> Cardinality:
        return to_cardinality(self.card)


@dataclass
class BacklinkStubsArray:
    card: str
    name: str
    target_id: UUID | None
    kind: str
    is_exclusive: bool = False

    def cardinality(self) -> Cardinality:
        return to_cardinality(self.card)


@dataclass
class TupleElementsSet:
    target_id: UUID
    name: str | None = None


@dataclass
class Pointer:
    """A link or property of an object type."""

    card: Cardinality
    kind: PointerKind
    name: str
    target_id: UUID
    flags: PointerFlags = PointerFlags(0)
    pointers: list[Pointer] | None = None

    @classmethod
    def from_record(cls, record: PointersSet | PointersSetPointersSet) -> Pointer:
        """Build a pointer from a fetched pointer or link property."""
        try:
            kind = PointerKind(record.kind)
        except ValueError:
            raise GelxCoreError(f"Invalid pointer kind: {record.kind}") from None
        if record.target_id is None:
            raise GelxCoreError(f"pointer `{record.name}` has no target")

        flags = PointerFlags(0)
        nested: list[Pointer] | None = None
        if isinstance(record, PointersSet):
            if record.is_exclusive:
                flags |= PointerFlags.IS_EXCLUSIVE
            if record.has_default:
                flags |= PointerFlags.HAS_DEFAULT
            nested = [cls.from_record(child) for child in record.pointers]
        if record.is_computed:
            flags |= PointerFlags.IS_COMPUTED
        if record.is_readonly:
            flags |= PointerFlags.IS_READONLY

        return cls(
            card=record.cardinality(),
            kind=kind,
            name=record.name,
            target_id=record.target_id,
            flags=flags,
            pointers=nested,
        )

    def is_link(self) -> bool:
        return self.kind is PointerKind.LINK

    def is_property(self) -> bool:
        return self.kind is PointerKind.PROPERTY

    def is_exclusive(self) -> bool:
        return PointerFlags.IS_EXCLUSIVE in self.flags

    def is_computed(self) -> bool:
        return PointerFlags.IS_COMPUTED in self.flags

    def has_default(self) -> bool:
        return PointerFlags.HAS_DEFAULT in self.flags

    def is_readonly(self) -> bool:
        return PointerFlags.IS_READONLY in self.flags


@dataclass
class Backlink:
    cardinality: Cardinality
    name: str
    target_id: UUID
    is_exclusive: bool = False
    stub: str | None = None

    def is_stub(self) -> bool:
        return self.stub is None


@dataclass
class Exclusives:
    """An exclusive constraint over one pointer or over several together."""

    pointers: list[Pointer]

    @property
    def is_many(self) -> bool:
        return len(self.pointers) > 1


_BACKLINK_NAME = re.compile(r"\[is (.+)\]")


def _localise_backlink_name(name: str, matched: str) -> str:
    module_name, separator, local_name = matched.partition("::")
    if not separator or module_name != "default":
        return name
    return _BACKLINK_NAME.sub(lambda _match: f"[is {local_name}]", name, count=1)


def _required(data: Mapping[str, Any], key: str) -> Any:
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


def _opt_uuid(value: Any) -> UUID | None:
    return None if value is None else _uuid(value)


def _id_refs(items: Iterable[Mapping[str, Any]] | None) -> list[IdRef]:
    return [IdRef(_uuid(_required(item, "id"))) for item in items or ()]


def _link_property(data: Mapping[str, Any]) -> PointersSetPointersSet:
    return PointersSetPointersSet(
        card=data.get("card"),
        name=_required(data, "name"),
        target_id=_opt_uuid(data.get("target_id")),
        kind=_required(data, "kind"),
        is_computed=data.get("is_computed"),
        is_readonly=data.get("is_readonly"),
    )


def _pointers_set(data: Mapping[str, Any]) -> PointersSet:
    return PointersSet(
        card=data.get("card"),
        name=_required(data, "name"),
        target_id=_opt_uuid(data.get("target_id")),
        kind=_required(data, "kind"),
        is_exclusive=bool(data.get("is_exclusive", False)),
        is_computed=data.get("is_computed"),
        is_readonly=data.get("is_readonly"),
        has_default=bool(data.get("has_default", False)),
        pointers=[_link_property(item) for item in data.get("pointers") or ()],
    )


def _backlinks_set(data: Mapping[str, Any]) -> BacklinksSet:
    return BacklinksSet(
        card=_required(data, "card"),
        name=_required(data, "name"),
        stub=_required(data, "stub"),
        target_id=_opt_uuid(data.get("target_id")),
        kind=_required(data, "kind"),
        is_exclusive=data.get("is_exclusive"),
    )


def _backlink_stub(data: Mapping[str, Any]) -> BacklinkStubsArray:
    return BacklinkStubsArray(
        card=_required(data, "card"),
        name=_required(data, "name"),
        target_id=_opt_uuid(data.get("target_id")),
        kind=_required(data, "kind"),
        is_exclusive=bool(data.get("is_exclusive", False)),
    )


@dataclass
class TypesOutput:
    """One row of the types query."""

    id: UUID
    name: str
    kind: str
    is_abstract: bool | None = None
    enum_values: list[str] | None = None
    is_seq: bool = False
    material_id: UUID | None = None
    bases: list[IdRef] = field(default_factory=list)
    union_of: list[IdRef] = field(default_factory=list)
    intersection_of: list[IdRef] = field(default_factory=list)
    pointers: list[PointersSet] = field(default_factory=list)
    exclusive_sets: list[ExclusivesSet] = field(default_factory=list)
    backlink_sets: list[BacklinksSet] = field(default_factory=list)
    backlink_stubs: list[BacklinkStubsArray] = field(default_factory=list)
    array_element_id: UUID | None = None
    tuple_elements: list[TupleElementsSet] = field(default_factory=list)
    multirange_element_id: UUID | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TypesOutput:
        """Build a row from its decoded JSON form."""
        enum_values = data.get("enum_values")
        return cls(
            id=_uuid(_required(data, "id")),
            name=_required(data, "name"),
            kind=_required(data, "kind"),
            is_abstract=data.get("is_abstract"),
            enum_values=None if enum_values is None else list(enum_values),
            is_seq=bool(data.get("is_seq", False)),
            material_id=_opt_uuid(data.get("material_id")),
            bases=_id_refs(data.get("bases")),
            union_of=_id_refs(data.get("union_of")),
            intersection_of=_id_refs(data.get("intersection_of")),
            pointers=[_pointers_set(item) for item in data.get("pointers") or ()],
            exclusive_sets=[
                ExclusivesSet(item.get("target")) for item in data.get("exclusives") or ()
            ],
            backlink_sets=[_backlinks_set(item) for item in data.get("backlinks") or ()],
            backlink_stubs=[_backlink_stub(item) for item in data.get("backlink_stubs") or ()],
            array_element_id=_opt_uuid(data.get("array_element_id")),
            tuple_elements=[
                TupleElementsSet(_uuid(_required(item, "target_id")), item.get("name"))
                for item in data.get("tuple_elements") or ()
            ],
            multirange_element_id=_opt_uuid(data.get("multirange_element_id")),
        )

    def pointers_map(self) -> dict[str, Pointer]:
        return {record.name: Pointer.from_record(record) for record in self.pointers}

    def exclusives(self, pointers: Mapping[str, Pointer]) -> list[Exclusives]:
        """Resolve exclusive constraint targets against the given pointers."""
        result: list[Exclusives] = []
        for exclusive in self.exclusive_sets:
            target = exclusive.target
            if target is None:
                continue
            if target in pointers:
                result.append(Exclusives([pointers[target]]))
                continue
            if not (target.startswith("(") and target.endswith(")")):
                continue
            names = (
                part.strip().lstrip(".").rstrip(",") for part in target.strip("()").split(" ")
            )
            found = [pointers[name] for name in names if name in pointers]
            if found:
                result.append(Exclusives(found))
        return result

    def backlinks(self) -> list[Backlink]:
        """Backlinks and backlink stubs, with default-module names shortened."""
        result: list[Backlink] = []
        for record in self.backlink_sets:
            if record.target_id is None:
                continue
            match = _BACKLINK_NAME.search(record.name)
            if match is None:
                continue
            result.append(
                Backlink(
                    cardinality=record.cardinality(),
                    name=_localise_backlink_name(record.name, match.group(1)),
                    target_id=record.target_id,
                    is_exclusive=bool(record.is_exclusive),
                    stub=record.stub,
                )
            )
        for stub in self.backlink_stubs:
            if stub.target_id is None:
                continue
            match = _BACKLINK_NAME.search(stub.name)
            if match is None:
                continue
            result.append(
                Backlink(
                    cardinality=stub.cardinality(),
                    name=_localise_backlink_name(stub.name, match.group(1)),
                    target_id=stub.target_id,
                    is_exclusive=stub.is_exclusive,
                    stub=None,
                )
            )
        return result


@dataclass
class ScalarType:
    id: UUID
    name: str
    is_abstract: bool = False
    is_seq: bool = False
    bases: list[IdRef] = field(default_factory=list)
    material_id: UUID | None = None
    cast_type: UUID | None = None


@dataclass
class EnumType:
    id: UUID
    name: str
    enum_values: list[str] = field(default_factory=list)
    bases: list[IdRef] = field(default_factory=list)


@dataclass
class ObjectType:
    id: UUID
    name: str
    is_abstract: bool = False
    bases: list[IdRef] = field(default_factory=list)
    union_of: list[IdRef] = field(default_factory=list)
    intersection_of: list[IdRef] = field(default_factory=list)
    pointers: list[Pointer] = field(default_factory=list)
    backlinks: list[Backlink] = field(default_factory=list)
    exclusives: list[Exclusives] = field(default_factory=list)


@dataclass
class ArrayType:
    id: UUID
    name: str
    array_element_id: UUID
    bases: list[IdRef] = field(default_factory=list)
    is_abstract: bool = False


@dataclass
class TupleElementDef:
    name: str
    target_id: UUID


@dataclass
class TupleType:
    id: UUID
    name: str
    tuple_elements: list[TupleElementDef] = field(default_factory=list)
    is_abstract: bool = False


@dataclass
class RangeType:
    id: UUID
    name: str
    range_element_id: UUID
    is_abstract: bool = False


@dataclass
class MultiRangeType:
    id: UUID
    name: str
    multirange_element_id: UUID
    is_abstract: bool = False


@dataclass
class BaseType:
    id: UUID
    name: str
    is_abstract: bool = False


Type = (
    ObjectType
    | ScalarType
    | EnumType
    | ArrayType
    | TupleType
    | RangeType
    | MultiRangeType
    | BaseType
)


def is_primitive(type_info: Type) -> bool:
    """Scalars, arrays, tuples and ranges are primitive."""
    return isinstance(type_info, (ScalarType, ArrayType, TupleType, RangeType, MultiRangeType))


def _element_id(info: TypesOutput) -> UUID:
    if info.multirange_element_id is None:
        raise GelxCoreError(f"type `{info.name}` has no element type")
    return info.multirange_element_id


def map_fetched_types(fetched_types: Iterable[TypesOutput]) -> dict[UUID, Type]:
    """Turn fetched rows into typed records keyed by id, in fetch order."""
    types: dict[UUID, Type] = {}
    for info in fetched_types:
        match info.kind:
            case "scalar":
                if info.enum_values is not None:
                    types[info.id] = EnumType(
                        id=info.id,
                        name=info.name,
                        enum_values=list(info.enum_values),
                        bases=list(info.bases),
                    )
                else:
                    types[info.id] = ScalarType(
                        id=info.id,
                        name=info.name,
                        is_abstract=bool(info.is_abstract),
                        is_seq=info.is_seq,
                        bases=list(info.bases),
                        material_id=info.material_id,
                        cast_type=None,
                    )
            case "range":
                types[info.id] = RangeType(
                    id=info.id,
                    name=info.name,
                    range_element_id=_element_id(info),
                    is_abstract=bool(info.is_abstract),
                )
            case "multirange":
                types[info.id] = MultiRangeType(
                    id=info.id,
                    name=info.name,
                    multirange_element_id=_element_id(info),
                    is_abstract=bool(info.is_abstract),
                )
            case "object":
                pointers = info.pointers_map()
                exclusives = info.exclusives(pointers)
                types[info.id] = ObjectType(
                    id=info.id,
                    name=info.name,
                    is_abstract=bool(info.is_abstract),
                    bases=list(info.bases),
                    union_of=list(info.union_of),
                    intersection_of=list(info.intersection_of),
                    pointers=[Pointer.from_record(record) for record in info.pointers],
                    backlinks=info.backlinks(),
                    exclusives=exclusives,
                )
            case _:
                pass
    return types


TYPES_QUERY = """WITH
  MODULE schema,
  material_scalars := (
    SELECT ScalarType
    FILTER NOT .abstract
       AND NOT EXISTS .enum_values
       AND NOT EXISTS (SELECT .ancestors FILTER NOT .abstract)
  )

  SELECT Type {
    id,
    name :=
      array_join(array_agg([IS ObjectType].union_of.name), ' | ')
      IF EXISTS [IS ObjectType].union_of
      ELSE .name,
    is_abstract := .abstract,

    kind := 'object' IF Type IS ObjectType ELSE
            'scalar' IF Type IS ScalarType ELSE
            'array' IF Type IS Array ELSE
            'tuple' IF Type IS Tuple ELSE
            'multirange' IF Type IS MultiRange ELSE
            'unknown',

    [IS ScalarType].enum_values,
    is_seq := 'std::sequence' in [IS ScalarType].ancestors.name,
    # for sequence (abstract type that has non-abstract ancestor)
    single material_id := (
      SELECT x := Type[IS ScalarType].ancestors
      FILTER x IN material_scalars
      LIMIT 1
    ).id,

    [IS InheritingObject].bases: {
      id
    } ORDER BY @index ASC,

    [IS ObjectType].union_of,
    [IS ObjectType].intersection_of,
    [IS ObjectType].pointers: {
      card := ('One' IF .required ELSE 'AtMostOne') IF <str>.cardinality = 'One' ELSE ('AtLeastOne' IF .required ELSE 'Many'),
      name,
      target_id := .target.id,
      kind := 'link' IF .__type__.name = 'schema::Link' ELSE 'property',
      is_exclusive := exists (select .constraints filter .name = 'std::exclusive'),
      is_computed := len(.computed_fields) != 0,
      is_readonly := .readonly,
      has_default := EXISTS .default or ('std::sequence' in .target[IS ScalarType].ancestors.name),
      [IS Link].pointers: {
        card := ('One' IF .required ELSE 'AtMostOne') IF <str>.cardinality = "One" ELSE ('AtLeastOne' IF .required ELSE 'Many'),
        name := '@' ++ .name,
        target_id := .target.id,
        kind := 'link' IF .__type__.name = 'schema::Link' ELSE 'property',
        is_computed := len(.computed_fields) != 0,
        is_readonly := .readonly
      } filter .name != '@source' and .name != '@target',
    } FILTER @is_owned,
    exclusives := assert_distinct((
      [is schema::ObjectType].constraints
      union
      [is schema::ObjectType].pointers.constraints
    ) {
      target := (.subject[is schema::Property].name ?? .subject[is schema::Link].name ?? .subjectexpr)
    } filter .name = 'std::exclusive'),
    backlinks := (
       SELECT DETACHED Link
       FILTER .target = Type
         AND NOT EXISTS .source[IS ObjectType].union_of
      ) {
      card := 'AtMostOne'
        IF
        EXISTS (select .constraints filter .name = 'std::exclusive')
        ELSE
        'Many',
      name := '<' ++ .name ++ '[is ' ++ assert_exists(.source.name) ++ ']',
      stub := .name,
      target_id := .source.id,
      kind := 'link',
      is_exclusive := (EXISTS (select .constraints filter .name = 'std::exclusive')) AND <str>.cardinality = 'One',
    },
    backlink_stubs := array_agg((
      WITH
        stubs := DISTINCT (SELECT DETACHED Link FILTER .target = Type).name,
        baseObjectId := (SELECT DETACHED ObjectType FILTER .name = 'std::BaseObject' LIMIT 1).id
      FOR stub in { stubs }
      UNION (
        SELECT {
          card := 'Many',
          name := '<' ++ stub,
          target_id := baseObjectId,
          kind := 'link',
          is_exclusive := false,
        }
      )
    )),
    array_element_id := [IS Array].element_type.id,

    tuple_elements := (SELECT [IS Tuple].element_types {
      target_id := .type.id,
      name
    } ORDER BY @index ASC),
    multirange_element_id := [IS MultiRange].element_type.id,
  }
FILTER NOT .from_alias
ORDER BY .name;
"""