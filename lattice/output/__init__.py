"""File naming and layout review helpers."""

from .lib import (
    DEFAULT_OUTPUT_DIRECTORY,
    FALLBACK_COMPONENT_NAME,
    file_extension,
    format_box_tree,
    suggest_file_name,
    suggest_file_path,
    to_kebab_case,
    to_pascal_case,
)

__all__ = [
    "DEFAULT_OUTPUT_DIRECTORY",
    "FALLBACK_COMPONENT_NAME",
    "file_extension",
    "format_box_tree",
    "suggest_file_name",
    "suggest_file_path",
    "to_kebab_case",
    "to_pascal_case",
]
