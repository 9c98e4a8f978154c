# gelxgen

Building blocks for generating typed Rust code from a Gel database schema.
The package reads the generator's configuration, models the rows returned by
the schema introspection queries, and decides how generated modules are laid
out in files.

## What is in the package

- `gelxgen.metadata`: `GelxMetadata` holds the generator settings, such as
  query and output paths, struct and function names, the exports alias and the
  derive macro lists. `GelxMetadata.from_toml` reads the
  `[package.metadata.gelx]` table of a `Cargo.toml` text. Every key that is
  missing gets its default, and a manifest without the table gives all
  defaults. `GelxMetadata.from_path` finds the nearest directory at or above a
  path that holds a `Cargo.toml` (see `get_package_root`), reads it, and sets
  `root_path`. `to_toml` and `to_base64` write the settings as a flat TOML
  table. `from_base64` decodes base64 and passes the text to `from_toml`.
  `GelxFeatures`, `FeatureOption` and `FeatureName` describe the `query`,
  `strum`, `builder` and `serde` feature switches. They render them as
  `#[derive(...)]`, `#[cfg_attr(...)]` and `#[cfg(...)]` attribute text.
  `with_macro_features` returns a copy of the settings that records which
  features a macro build has turned on.
- `gelxgen.types`: records for rows of the types query (`TypesOutput.from_dict`
  and the records it holds), plus the typed model built from them. The model
  includes `Pointer`, `Backlink`, `Exclusives`, `ScalarType`, `EnumType`,
  `ObjectType`, `RangeType`, `MultiRangeType` and more. `map_fetched_types`
  turns rows into typed entries keyed by id, in row order. `to_cardinality`
  maps cardinality names. The query text is available as `TYPES_QUERY`.
- `gelxgen.globals`: `GlobalsOutput.from_dict` builds records of the database's
  global variables. The query text is available as `GLOBALS_QUERY`.
- `gelxgen.naming`: `to_snake_case`, `to_pascal_case`, `is_keyword` and
  `into_safe`. `into_safe` turns a Rust keyword into a raw identifier, or
  appends `_` for keywords that cannot be raw.
- `gelxgen.utils`: `maybe_uuid_to_token_name`, `uuid_to_token_name` and
  `maybe_uuid_to_import` map the well-known scalar type ids (such as
  `STD_STR` and `STD_INT32`) to Rust type names and codec constant paths.
  `resolve_path` resolves a relative query path such as
  `queries/get_users.edgeql` against the `CARGO_MANIFEST_DIR` environment
  variable.
- `gelxgen.modules`: `ModuleName` parses qualified schema names such as
  `default::User` or `std::array<std::str>`. `ModuleTree` groups types by
  module, skipping parameterised names, and `ModuleTree.module_files` returns
  a `ModuleOutputs` list with one file per user-defined module. In that list
  the root is `mod.rs`, a module with children is `<name>/mod.rs`, and any
  other module is `<name>.rs`. `ModuleOutputs` can also be read from a
  directory (`from_directory`), written to disk (`write_to_fs`) or turned into
  a path-to-code mapping (`to_map`).
- `gelxgen.errors`: `GelxCoreError` is raised for invalid configuration, I/O
  failures and malformed records.

## Configuration

```toml
[package.metadata.gelx]
queries_path = "./queries"
output_path = "./src/db"
features = { query = "with_query", serde = "with_serde", strum = false }
```

Each feature value can take one of three forms:

- `true` (the default) turns the feature on.
- `false` turns it off.
- A string turns it on behind the crate feature of that name, using
  `cfg_attr(feature = "...")`.

```python
from gelxgen.metadata import GelxMetadata

metadata = GelxMetadata.from_path("path/to/project")
print(metadata.output_path, metadata.input_struct_name)
print(metadata.struct_derive_macro_paths())  # ['::std::fmt::Debug', '::core::clone::Clone']
```

## Module names

```python
from gelxgen.modules import ModuleName

name = ModuleName.parse("test::test2::Amazing")
name.original_name()      # "test::test2::Amazing"
name.modules_path()       # "test::test2"
name.name_ident(True)     # "amazing"
name.name_ident(False)    # "Amazing"
```

## What the package does not do

- It does not connect to a database or run the introspection queries. You
  fetch the rows yourself and pass the decoded dictionaries to
  `TypesOutput.from_dict` and `GlobalsOutput.from_dict`.
- It does not render the Rust code for scalar, enum or global types on its
  own. `ModuleTree` accepts `render_type` and `render_globals` callables for
  that. Without them, a generated file holds only its header, its imports,
  its child module declarations and an empty `mod` block for each concrete
  object type.
- It does not pretty-print Rust code, and it has no command line.

## Tests

The tests use pytest. The package's `test` extra installs it.