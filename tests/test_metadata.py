import base64
import tomllib
from pathlib import Path

import pytest

from gelxgen.errors import GelxCoreError
from gelxgen.metadata import (
    FeatureName,
    FeatureOption,
    GelxFeatures,
    GelxMetadata,
    get_package_root,
    with_macro_features,
)

EXAMPLE_MANIFEST = """\
[package]
name = "gelx_example"

[package.metadata.gelx]
queries_path = "./queries"
features = { query = "with_query", serde = "with_serde" }
output_path = "./src/db"
input_struct_name = "Input"
output_struct_name = "Output"
query_function_name = "query"
transaction_function_name = "transaction"
"""

ENUM_DERIVES = ["::std::fmt::Debug", "::core::clone::Clone", "::core::marker::Copy"]


def test_try_from_base64():
    expected = GelxMetadata()
    encoded = expected.to_base64()
    assert GelxMetadata.from_base64(encoded) == expected


def test_defaults():
    metadata = GelxMetadata()
    assert metadata.queries_path == Path("queries")
    assert metadata.output_path == Path("src/db")
    assert metadata.query_constant_name == "QUERY"
    assert metadata.exports_alias == "__g"
    assert metadata.struct_derive_macros == ["::std::fmt::Debug", "::core::clone::Clone"]
    assert metadata.scalar_derive_macros == metadata.struct_derive_macros
    assert metadata.enum_derive_macros == ENUM_DERIVES


def test_from_toml_reads_package_metadata():
    metadata = GelxMetadata.from_toml(EXAMPLE_MANIFEST)
    assert metadata.queries_path == Path("./queries")
    assert metadata.features.query.alias() == "with_query"
    assert metadata.features.serde.alias() == "with_serde"
    assert metadata.features.strum == FeatureOption(True)
    assert metadata.transaction_function_name == "transaction"


def test_from_toml_without_section_gives_defaults():
    assert GelxMetadata.from_toml('[package]\nname = "x"\n') == GelxMetadata()


def test_from_toml_disabled_features():
    text = "[package.metadata.gelx]\nfeatures = { strum = false, builder = false }\n"
    features = GelxMetadata.from_toml(text).features
    assert not features.strum.is_enabled()
    assert not features.builder.is_enabled()
    assert features.query.is_enabled()


def test_from_toml_invalid_document():
    with pytest.raises(GelxCoreError):
        GelxMetadata.from_toml("[package\n")


def test_from_toml_wrong_type():
    with pytest.raises(GelxCoreError):
        GelxMetadata.from_toml("[package.metadata.gelx]\nqueries_path = 5\n")


def test_from_base64_of_manifest():
    encoded = base64.b64encode(EXAMPLE_MANIFEST.encode()).decode()
    assert GelxMetadata.from_base64(encoded) == GelxMetadata.from_toml(EXAMPLE_MANIFEST)


@pytest.mark.parametrize("value", ["!!!", base64.b64encode(b"\xff").decode()])
def test_from_base64_errors(value):
    with pytest.raises(GelxCoreError):
        GelxMetadata.from_base64(value)


def test_to_toml_contains_fields():
    metadata = GelxMetadata(gel_instance="gelx", gel_branch="main")
    data = tomllib.loads(metadata.to_toml())
    assert data["queries_path"] == "queries"
    assert data["gel_instance"] == "gelx"
    assert data["gel_branch"] == "main"
    assert data["features"] == {"query": True, "strum": True, "builder": True, "serde": True}
    assert "gel_config_path" not in data
    assert "root_path" not in data


def test_from_path_finds_root(tmp_path):
    (tmp_path / "Cargo.toml").write_text(EXAMPLE_MANIFEST)
    nested = tmp_path / "src" / "db"
    nested.mkdir(parents=True)
    metadata = GelxMetadata.from_path(nested)
    assert metadata.root_path == tmp_path
    assert metadata.features.query.alias() == "with_query"
    assert get_package_root(nested) == tmp_path


def test_get_package_root_on_file_errors(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    with pytest.raises(GelxCoreError):
        get_package_root(target)


def test_idents():
    metadata = GelxMetadata()
    assert metadata.input_struct_ident() == "Input"
    assert metadata.output_struct_ident() == "Output"
    assert metadata.query_function_ident() == "query"
    assert metadata.exports_alias_ident() == "__g"
    with pytest.raises(GelxCoreError):
        GelxMetadata(input_struct_name="1bad").input_struct_ident()


def test_derive_paths_drop_invalid():
    metadata = GelxMetadata(
        struct_derive_macros=["::std::fmt::Debug", "not a path", "serde :: Serialize", "fn::x"]
    )
    assert metadata.struct_derive_macro_paths() == ["::std::fmt::Debug", "serde::Serialize"]
    assert GelxMetadata().enum_derive_macro_paths() == ENUM_DERIVES


def test_feature_option():
    alias = FeatureOption.from_value("ssr")
    assert alias.is_enabled() and alias.alias() == "ssr"
    off = FeatureOption.from_value(False)
    assert not off.is_enabled() and off.alias() is None
    assert FeatureOption().is_enabled()
    assert off.to_value() is False
    with pytest.raises(GelxCoreError):
        FeatureOption.from_value(3)


def test_feature_name_is_enabled():
    assert FeatureName.SERDE.is_enabled(["serde"])
    assert not FeatureName.BUILDER.is_enabled(["serde", FeatureName.QUERY])
    assert FeatureName.QUERY.is_enabled([FeatureName.QUERY])


def test_enum_derive_features_match_generated_code():
    features = GelxMetadata.from_toml(EXAMPLE_MANIFEST).features
    result = features.get_enum_derive_features("__g", ENUM_DERIVES, False)
    assert result.splitlines() == [
        "#[derive(::std::fmt::Debug, ::core::clone::Clone, ::core::marker::Copy, "
        "__g::strum::AsRefStr, __g::strum::Display, __g::strum::EnumString, "
        "__g::strum::EnumIs, __g::strum::FromRepr, __g::strum::IntoStaticStr)]",
        '#[cfg_attr(feature = "with_serde", derive(__g::serde::Serialize, __g::serde::Deserialize))]',
        '#[cfg_attr(feature = "with_query", derive(__g::gel_derive::Queryable))]',
        '#[cfg_attr(feature = "with_query", gel(crate_path = __g::gel_protocol))]',
        '#[strum(crate = "__g::strum")]',
    ]


def test_struct_derive_features_with_builder_for_input():
    features = GelxFeatures()
    result = features.get_struct_derive_features("__g", ["::core::clone::Clone"], True, False)
    assert "__g::typed_builder::TypedBuilder" in result
    assert "#[builder(crate_module_path = __g::typed_builder)]" in result
    output_only = features.get_struct_derive_features("__g", ["::core::clone::Clone"], False, False)
    assert "TypedBuilder" not in output_only


def test_macro_mode_needs_macro_features():
    features = GelxFeatures()
    assert features.get_enum_derive_features("__g", ["::core::clone::Clone"], True) == (
        "#[derive(::core::clone::Clone)]"
    )
    metadata = with_macro_features(GelxMetadata(), ["serde"])
    assert metadata.features.is_enabled(FeatureName.SERDE, True)
    assert not metadata.features.is_enabled(FeatureName.QUERY, True)


def test_annotate_and_wrap():
    features = GelxFeatures.from_mapping({"query": "with_query", "strum": False})
    assert features.annotate(FeatureName.QUERY, False) == '#[cfg(feature = "with_query")]'
    assert features.annotate(FeatureName.SERDE, False) == ""
    assert features.annotate(FeatureName.STRUM, False) == ""
    assert features.wrap_annotation(FeatureName.STRUM, "strum(x)", False) == ""
    assert features.wrap_annotation(FeatureName.SERDE, "serde(x)", False) == "#[serde(x)]"
    assert features.to_mapping() == {
        "query": "with_query",
        "strum": False,
        "builder": True,
        "serde": True,
    }


def test_features_from_non_mapping_errors():
    with pytest.raises(GelxCoreError):
        GelxFeatures.from_mapping(["query"])