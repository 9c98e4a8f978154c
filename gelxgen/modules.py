"""Module layout of generated code: type names, module trees and output files."""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from gelxgen.errors import GelxCoreError
from gelxgen.globals import GlobalsOutput
from gelxgen.metadata import GelxMetadata
from gelxgen.naming import into_safe, to_pascal_case, to_snake_case
from gelxgen.types import EnumType, ObjectType, ScalarType, Type

SYSTEM_NAMESPACES = ("std", "sys", "cfg", "schema", "multirange", "ext")

_HEADER = (
    "//! This file is generated by `gelx generate`.\n"
    "//! It is not intended for manual editing.\n"
    "//! To update it, run `gelx generate`.\n"
    "#![cfg_attr(rustfmt, rustfmt_skip)]\n"
    "#![allow(unused)]\n"
    "#![allow(unused_qualifications)]\n"
    "#![allow(clippy::all)]"
)

TypeRenderer = Callable[[GelxMetadata, Type, "ModuleName", Mapping[UUID, Type]], str]
GlobalsRenderer = Callable[[GelxMetadata, Sequence[GlobalsOutput]], str]


def is_system_namespace(name: str) -> bool:
    """Whether ``name`` is one of the database's built-in namespaces."""
    return name in SYSTEM_NAMESPACES


def _join(parts: Iterable[str]) -> str:
    return "\n".join(part for part in parts if part)


def _is_ident(segment: str) -> bool:
    bare = segment[2:] if segment.startswith("r#") else segment
    return bare != "_" and bare.isidentifier()


@dataclass(frozen=True)
class ModuleName:
    """The name of a resource in the database, split into its modules."""

    modules: tuple[str, ...]
    name: str
    child: ModuleName | None = None

    @classmethod
    def parse(cls, value: str) -> ModuleName:
        """Parse a name such as ``default::User`` or ``std::array<std::str>``."""
        child = None
        if value.endswith(">"):
            parent_name, separator, child_name = value.partition("<")
            if not separator:
                raise GelxCoreError(f"cannot parse module name: `{value}`")
            value = parent_name
            child = cls.parse(child_name.rstrip(">"))
        *modules, name = value.split("::")
        return cls(tuple(modules), name, child)

    def original_name(self) -> str:
        parent_name = "::".join((*self.modules, self.name))
        if self.child is not None:
            return f"{parent_name}<{self.child.original_name()}>"
        return parent_name

    def __str__(self) -> str:
        return self.original_name()

    def is_system_namespace(self) -> bool:
        return bool(self.modules) and is_system_namespace(self.modules[0])

    def is_user_defined(self) -> bool:
        return not self.is_system_namespace()

    def modules_path(self) -> str:
        """The Rust path of the modules holding this name."""
        segments = [into_safe(to_snake_case(module)) for module in self.modules]
        if not segments or not all(_is_ident(segment) for segment in segments):
            raise GelxCoreError(
                f"cannot build a module path for `{self.original_name()}`"
            )
        return "::".join(segments)

    def name_ident(self, snake_case: bool) -> str:
        cased = to_snake_case(self.name) if snake_case else to_pascal_case(self.name)
        return into_safe(cased)


@dataclass
class ModuleOutput:
    """The code of one generated file and its path relative to the output root."""

    path: Path
    tokens: str


def _format(tokens: str) -> str:
    return tokens.strip() + "\n"


class ModuleOutputs(list[ModuleOutput]):
    """The generated files, the root module first."""

    @classmethod
    def from_directory(
        cls, path: str | os.PathLike[str], base: str | os.PathLike[str]
    ) -> ModuleOutputs:
        """Read every file below ``path``, with paths relative to ``base``."""
        outputs = cls()
        directory, base_path = Path(path), Path(base)
        try:
            entries = sorted(directory.iterdir())
            for entry in entries:
                if entry.is_dir():
                    outputs.extend(cls.from_directory(entry, base_path))
                    continue
                tokens = entry.read_text(encoding="utf-8")
                try:
                    relative = entry.relative_to(base_path)
                except ValueError:
                    continue
                outputs.append(ModuleOutput(relative, tokens))
        except OSError as error:
            raise GelxCoreError(error) from error
        return outputs

    def write_to_fs(self, path: str | os.PathLike[str]) -> None:
        """Write every file below ``path``, creating directories as needed."""
        root = Path(path)
        for output in self:
            print(f"Writing to {output.path}", file=sys.stderr)
            target = root / output.path
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(_format(output.tokens), encoding="utf-8")
            except OSError as error:
                raise GelxCoreError(error) from error

    def to_map(self) -> dict[Path, str]:
        """Map each file path to its code."""
        return {output.path: _format(output.tokens) for output in self}

    def append_to_root(self, tokens: str) -> None:
        if not self:
            return
        root = self[0]
        root.tokens = _join((root.tokens, tokens))

    def push_module(self, path: str | os.PathLike[str], tokens: str) -> None:
        self.append(ModuleOutput(Path(path), tokens))


@dataclass
class ModuleNode:
    """A module in the tree of generated modules; the root has an empty name."""

    name: str = ""
    metadata: GelxMetadata = field(default_factory=GelxMetadata)
    all_types: Mapping[UUID, Type] = field(default_factory=dict)
    globals_list: Sequence[GlobalsOutput] = field(default_factory=list)
    render_type: TypeRenderer | None = None
    render_globals: GlobalsRenderer | None = None
    children: dict[str, ModuleNode] = field(default_factory=dict)
    types: dict[UUID, Type] = field(default_factory=dict)

    def is_root(self) -> bool:
        return not self.name

    def insert(self, modules: Sequence[str], type_info: Type) -> None:
        """Place a type in the module given by the ``modules`` path."""
        if not modules:
            self.types.setdefault(type_info.id, type_info)
            return
        current, *remaining = modules
        node = self.children.get(current)
        if node is None:
            node = ModuleNode(
                name=current,
                metadata=self.metadata,
                all_types=self.all_types,
                globals_list=self.globals_list,
                render_type=self.render_type,
                render_globals=self.render_globals,
            )
            self.children[current] = node
        node.insert(remaining, type_info)

    def filename(self) -> str:
        if not self.children:
            return to_snake_case(self.name) + ".rs"
        if self.is_root():
            return "mod.rs"
        return to_snake_case(self.name) + "/mod.rs"

    def safe_name(self) -> str:
        return into_safe(to_snake_case(self.name))

    def is_user_defined(self) -> bool:
        return any(child.is_user_defined() for child in self.children.values()) or bool(
            self.user_defined_types()
        )

    def user_defined_types(self) -> dict[UUID, Type]:
        return {
            type_id: type_info
            for type_id, type_info in self.types.items()
            if ModuleName.parse(type_info.name).is_user_defined()
        }

    def imports_token_stream(self) -> str:
        """The file header, imports and child module declarations."""
        parts = [_HEADER]
        if self.is_root():
            parts.append(f"use ::gelx::exports as {self.metadata.exports_alias_ident()};")
            default_child = self.children.get("default")
            if default_child is not None:
                parts.append(f"pub use {default_child.safe_name()}::*;")
        else:
            parts.append("use super::*;")
        for node in self.children.values():
            if not node.is_user_defined():
                continue
            parts.append(f'#[path = "{node.filename()}"]\npub mod {node.safe_name()};')
        return _join(parts)

    def _token_stream(self) -> str:
        parts = [self.imports_token_stream()]
        if self.is_root() and self.render_globals is not None:
            parts.append(self.render_globals(self.metadata, self.globals_list))
        for type_info in self.user_defined_types().values():
            module_name = ModuleName.parse(type_info.name)
            match type_info:
                case ObjectType(is_abstract=True):
                    continue
                case ObjectType():
                    parts.append(
                        f"mod {module_name.name_ident(True)} {{\n    use super::*;\n}}"
                    )
                case ScalarType() | EnumType() if self.render_type is not None:
                    parts.append(
                        self.render_type(self.metadata, type_info, module_name, self.all_types)
                    )
                case _:
                    pass
        return _join(parts)

    def _collect(self, path: Path, outputs: ModuleOutputs) -> None:
        if not self.is_user_defined():
            return
        current_path = path / self.filename()
        outputs.append(ModuleOutput(current_path, self._token_stream()))
        for child in self.children.values():
            child._collect(current_path.parent, outputs)


class ModuleTree:
    """All fetched types arranged by the module they belong to."""

    def __init__(
        self,
        types: Mapping[UUID, Type],
        globals_list: Sequence[GlobalsOutput],
        metadata: GelxMetadata,
        render_type: TypeRenderer | None = None,
        render_globals: GlobalsRenderer | None = None,
    ) -> None:
        self.types = types
        self.globals_list = globals_list
        self.metadata = metadata
        self.root = ModuleNode(
            metadata=metadata,
            all_types=types,
            globals_list=globals_list,
            render_type=render_type,
            render_globals=render_globals,
        )
        for type_info in types.values():
            name = ModuleName.parse(type_info.name)
            # Parameterised types are not laid out in modules yet.
            if name.child is not None:
                continue
            self.root.insert(name.modules, type_info)

    def module_files(self) -> ModuleOutputs:
        """The generated files, one per user-defined module."""
        outputs = ModuleOutputs()
        self.root._collect(Path(), outputs)
        return outputs