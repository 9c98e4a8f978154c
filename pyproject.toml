[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gelxgen"
version = "0.8.5"
description = "Configuration, schema introspection models and module layout helpers for generating typed Rust code from a Gel database schema."
requires-python = ">=3.11"
dependencies = ["tomli-w"]
keywords = ["gel", "codegen", "schema", "database", "rust"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gelxgen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
