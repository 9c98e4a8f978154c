"""Configuration, schema models, naming and module layout for Gel code generation."""

__version__ = "0.8.5"
__all__ = ["errors", "metadata", "naming", "utils", "types", "globals", "modules"]