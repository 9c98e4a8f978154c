"""Configuration for code generation, read from a crate manifest."""

from __future__ import annotations

import base64
import binascii
import enum
import os
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import tomli_w

from gelxgen.errors import GelxCoreError

_RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn",
        "else", "enum", "extern", "false", "fn", "for", "if", "impl", "in",
        "let", "loop", "match", "mod", "move", "mut", "pub", "ref", "return",
        "self", "Self", "static", "struct", "super", "trait", "true", "type",
        "unsafe", "use", "where", "while", "abstract", "become", "box", "do",
        "final", "macro", "override", "priv", "typeof", "unsized", "virtual",
        "yield", "try", "_",
    }
)
_PATH_KEYWORDS = frozenset({"crate", "self", "super", "Self"})


def _rust_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _is_ident(name: str) -> bool:
    bare = name[2:] if name.startswith("r#") else name
    return bare != "_" and bare.isidentifier()


def _ident(name: str) -> str:
    if not _is_ident(name):
        raise GelxCoreError(f"`{name}` is not a valid identifier")
    return name


def _is_path_segment(segment: str) -> bool:
    if segment.startswith("r#"):
        return _is_ident(segment)
    if not segment.isidentifier():
        return False
    return segment not in _RUST_KEYWORDS or segment in _PATH_KEYWORDS


def _parse_path(text: str) -> str | None:
    source = text.strip()
    leading = source.startswith("::")
    if leading:
        source = source[2:]
    segments = [part.strip() for part in source.split("::")]
    if not all(_is_path_segment(part) for part in segments):
        return None
    return ("::" if leading else "") + "::".join(segments)


class FeatureName(enum.StrEnum):
    """A feature that generated code can depend on."""

    SERDE = "serde"
    BUILDER = "builder"
    QUERY = "query"
    STRUM = "strum"

    def is_enabled(self, macro_features: Iterable[str]) -> bool:
        """Whether this feature is among the features the macro runs with."""
        return self.value in {str(feature) for feature in macro_features}


@dataclass(frozen=True)
class FeatureOption:
    """A feature is either switched on or off, or gated behind an alias."""

    value: str | bool = True

    @classmethod
    def from_value(cls, value: Any) -> FeatureOption:
        if isinstance(value, FeatureOption):
            return value
        if isinstance(value, (bool, str)):
            return cls(value)
        raise GelxCoreError(
            "data did not match any variant of untagged enum GelxFeatureOptions"
        )

    def to_value(self) -> str | bool:
        return self.value

    def is_enabled(self) -> bool:
        return True if isinstance(self.value, str) else self.value

    def alias(self) -> str | None:
        return self.value if isinstance(self.value, str) else None


_FEATURE_KEYS = ("query", "strum", "builder", "serde")


@dataclass(frozen=True)
class GelxFeatures:
    """Per-feature settings; ``macro_features`` lists those a macro build has."""

    query: FeatureOption = field(default_factory=FeatureOption)
    strum: FeatureOption = field(default_factory=FeatureOption)
    builder: FeatureOption = field(default_factory=FeatureOption)
    serde: FeatureOption = field(default_factory=FeatureOption)
    macro_features: frozenset[FeatureName] = frozenset()

    @classmethod
    def from_mapping(cls, mapping: Any) -> GelxFeatures:
        if not isinstance(mapping, Mapping):
            raise GelxCoreError("invalid type for `features`: expected a table")
        options = {
            key: FeatureOption.from_value(mapping[key])
            for key in _FEATURE_KEYS
            if key in mapping
        }
        return cls(**options)

    def to_mapping(self) -> dict[str, str | bool]:
        return {key: getattr(self, key).to_value() for key in _FEATURE_KEYS}

    def _option(self, feature: FeatureName | str) -> FeatureOption:
        return getattr(self, FeatureName(feature).value)

    def is_enabled(self, feature: FeatureName | str, is_macro: bool) -> bool:
        feature = FeatureName(feature)
        return self._option(feature).is_enabled() and (
            not is_macro or feature.is_enabled(self.macro_features)
        )

    def alias(self, feature: FeatureName | str) -> str | None:
        return self._option(feature).alias()

    def get_derive_features(
        self,
        features: Iterable[FeatureName | str],
        exports_ident: str,
        derive_macro_paths: Iterable[str],
        is_input: bool,
        is_macro: bool,
    ) -> str:
        """Render the derive attributes for the given features."""
        groups: dict[str | None, list[str]] = {None: list(derive_macro_paths)}
        extra: list[str] = []
        exports = exports_ident

        for feature in map(FeatureName, features):
            if not self.is_enabled(feature, is_macro):
                continue
            entry = groups.setdefault(self.alias(feature), [])
            match feature:
                case FeatureName.SERDE:
                    entry += [f"{exports}::serde::Serialize", f"{exports}::serde::Deserialize"]
                case FeatureName.BUILDER:
                    if is_input:
                        entry.append(f"{exports}::typed_builder::TypedBuilder")
                        extra.append(
                            self.wrap_annotation(
                                feature,
                                f"builder(crate_module_path = {exports}::typed_builder)",
                                is_macro,
                            )
                        )
                case FeatureName.QUERY:
                    entry.append(f"{exports}::gel_derive::Queryable")
                    extra.append(
                        self.wrap_annotation(
                            feature, f"gel(crate_path = {exports}::gel_protocol)", is_macro
                        )
                    )
                case FeatureName.STRUM:
                    entry += [
                        f"{exports}::strum::{name}"
                        for name in (
                            "AsRefStr",
                            "Display",
                            "EnumString",
                            "EnumIs",
                            "FromRepr",
                            "IntoStaticStr",
                        )
                    ]
                    extra.append(
                        self.wrap_annotation(
                            feature, f"strum(crate = {_rust_str(exports + '::strum')})", is_macro
                        )
                    )

        lines = []
        for key, derives in groups.items():
            joined = ", ".join(derives)
            if key is None:
                lines.append(f"#[derive({joined})]")
            elif derives:
                lines.append(f"#[cfg_attr(feature = {_rust_str(key)}, derive({joined}))]")
        lines.extend(line for line in extra if line)
        return "\n".join(lines)

    def get_struct_derive_features(
        self, exports_ident: str, derive_macro_paths: Iterable[str], is_input: bool, is_macro: bool
    ) -> str:
        return self.get_derive_features(
            [FeatureName.SERDE, FeatureName.BUILDER, FeatureName.QUERY],
            exports_ident,
            derive_macro_paths,
            is_input,
            is_macro,
        )

    def get_enum_derive_features(
        self, exports_ident: str, derive_macro_paths: Iterable[str], is_macro: bool
    ) -> str:
        return self.get_derive_features(
            [FeatureName.SERDE, FeatureName.QUERY, FeatureName.STRUM],
            exports_ident,
            derive_macro_paths,
            False,
            is_macro,
        )

    def wrap_annotation(self, feature: FeatureName | str, tokens: str, is_macro: bool) -> str:
        """Wrap an attribute body, gated by the feature's alias if it has one."""
        if not self.is_enabled(feature, is_macro):
            return ""
        key = self.alias(feature)
        if key is None:
            return f"#[{tokens}]"
        return f"#[cfg_attr(feature = {_rust_str(key)}, {tokens})]"

    def annotate(self, feature: FeatureName | str, is_macro: bool) -> str:
        """A ``cfg`` attribute for the feature's alias, or nothing."""
        if not self.is_enabled(feature, is_macro):
            return ""
        alias = self.alias(feature)
        if alias is None:
            return ""
        return f"#[cfg(feature = {_rust_str(alias)})]"


def _default_struct_derives() -> list[str]:
    return ["::std::fmt::Debug", "::core::clone::Clone"]


def _default_enum_derives() -> list[str]:
    return ["::std::fmt::Debug", "::core::clone::Clone", "::core::marker::Copy"]


_PATH_FIELDS = ("queries_path", "output_path")
_STR_FIELDS = (
    "input_struct_name",
    "output_struct_name",
    "query_function_name",
    "transaction_function_name",
    "query_constant_name",
    "exports_alias",
)
_LIST_FIELDS = ("struct_derive_macros", "scalar_derive_macros", "enum_derive_macros")
_OPTIONAL_FIELDS = ("gel_config_path", "gel_instance", "gel_branch")


@dataclass
class GelxMetadata:
    """Settings that steer code generation."""

    queries_path: Path = field(default_factory=lambda: Path("queries"))
    features: GelxFeatures = field(default_factory=GelxFeatures)
    output_path: Path = field(default_factory=lambda: Path("src/db"))
    input_struct_name: str = "Input"
    output_struct_name: str = "Output"
    query_function_name: str = "query"
    transaction_function_name: str = "transaction"
    query_constant_name: str = "QUERY"
    exports_alias: str = "__g"
    struct_derive_macros: list[str] = field(default_factory=_default_struct_derives)
    scalar_derive_macros: list[str] = field(default_factory=_default_struct_derives)
    enum_derive_macros: list[str] = field(default_factory=_default_enum_derives)
    gel_config_path: Path | None = None
    gel_instance: str | None = None
    gel_branch: str | None = None
    root_path: Path | None = None
    from_build_script: bool = False

    @classmethod
    def _from_table(cls, table: Mapping[str, Any]) -> GelxMetadata:
        def expect_str(key: str) -> str:
            value = table[key]
            if not isinstance(value, str):
                raise GelxCoreError(f"invalid type for `{key}`: expected a string")
            return value

        kwargs: dict[str, Any] = {}
        for key in _PATH_FIELDS:
            if key in table:
                kwargs[key] = Path(expect_str(key))
        for key in _STR_FIELDS:
            if key in table:
                kwargs[key] = expect_str(key)
        for key in _LIST_FIELDS:
            if key in table:
                value = table[key]
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise GelxCoreError(f"invalid type for `{key}`: expected a list of strings")
                kwargs[key] = list(value)
        if "gel_config_path" in table:
            kwargs["gel_config_path"] = Path(expect_str("gel_config_path"))
        for key in ("gel_instance", "gel_branch"):
            if key in table:
                kwargs[key] = expect_str(key)
        if "features" in table:
            kwargs["features"] = GelxFeatures.from_mapping(table["features"])
        return cls(**kwargs)

    @classmethod
    def from_toml(cls, text: str) -> GelxMetadata:
        """Read ``[package.metadata.gelx]`` from a manifest; defaults if absent."""
        try:
            document = tomllib.loads(text)
        except tomllib.TOMLDecodeError as error:
            raise GelxCoreError(error) from error

        table: Any = document
        for key in ("package", "metadata", "gelx"):
            if not isinstance(table, dict) or key not in table:
                return cls()
            table = table[key]

        if not isinstance(table, dict):
            raise GelxCoreError("invalid type for `package.metadata.gelx`: expected a table")
        return cls._from_table(table)

    @classmethod
    def from_path(cls, path: str | os.PathLike[str]) -> GelxMetadata:
        """Read the manifest of the crate that contains ``path``."""
        root = get_package_root(path)
        try:
            text = (root / "Cargo.toml").read_text(encoding="utf-8")
        except OSError as error:
            raise GelxCoreError(error) from error
        metadata = cls.from_toml(text)
        metadata.root_path = root
        return metadata

    @classmethod
    def from_base64(cls, value: str) -> GelxMetadata:
        try:
            raw = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as error:
            raise GelxCoreError(error) from error
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as error:
            raise GelxCoreError(error) from error
        return cls.from_toml(text)

    def to_toml(self) -> str:
        data: dict[str, Any] = {
            "queries_path": str(self.queries_path),
            "features": self.features.to_mapping(),
            "output_path": str(self.output_path),
        }
        for key in _STR_FIELDS:
            data[key] = getattr(self, key)
        for key in _LIST_FIELDS:
            data[key] = list(getattr(self, key))
        for key in _OPTIONAL_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = str(value)
        return tomli_w.dumps(data)

    def to_base64(self) -> str:
        return base64.b64encode(self.to_toml().encode("utf-8")).decode("ascii")

    def __str__(self) -> str:
        return self.to_toml()

    def input_struct_ident(self) -> str:
        return _ident(self.input_struct_name)

    def output_struct_ident(self) -> str:
        return _ident(self.output_struct_name)

    def query_constant_ident(self) -> str:
        return _ident(self.query_constant_name)

    def query_function_ident(self) -> str:
        return _ident(self.query_function_name)

    def transaction_function_ident(self) -> str:
        return _ident(self.transaction_function_name)

    def exports_alias_ident(self) -> str:
        return _ident(self.exports_alias)

    def struct_derive_macro_paths(self) -> list[str]:
        return [p for p in map(_parse_path, self.struct_derive_macros) if p is not None]

    def scalar_derive_macro_paths(self) -> list[str]:
        return [p for p in map(_parse_path, self.scalar_derive_macros) if p is not None]

    def enum_derive_macro_paths(self) -> list[str]:
        return [p for p in map(_parse_path, self.enum_derive_macros) if p is not None]


def get_package_root(path: str | os.PathLike[str]) -> Path:
    """The nearest directory at or above ``path`` that holds a ``Cargo.toml``."""
    start = Path(path)
    for candidate in (start, *start.parents):
        try:
            with os.scandir(candidate) as entries:
                if any(entry.name == "Cargo.toml" for entry in entries):
                    return candidate
        except OSError as error:
            raise GelxCoreError(error) from error
    raise GelxCoreError("Root directory for rust project not found.")


def with_macro_features(metadata: GelxMetadata, macro_features: Iterable[str]) -> GelxMetadata:
    """A copy of ``metadata`` whose features know which macro features are on."""
    features = replace(
        metadata.features, macro_features=frozenset(FeatureName(f) for f in macro_features)
    )
    return replace(metadata, features=features)