"""Prompt assembly for component code generation."""

from .lib import (
    EMPTY_PAGE_INSTRUCTION,
    ROLE_FRAMING,
    ROW_TOLERANCE,
    PromptPair,
    assemble_box_prompts,
    assemble_page_prompts,
    build_box_prompt,
    build_page_prompt,
    build_system_prompt,
    collect_shared_components,
    describe_box_tree,
    describe_spec,
    reading_order,
)

__all__ = [
    "PromptPair",
    "ROLE_FRAMING",
    "EMPTY_PAGE_INSTRUCTION",
    "ROW_TOLERANCE",
    "build_system_prompt",
    "build_page_prompt",
    "build_box_prompt",
    "describe_box_tree",
    "describe_spec",
    "collect_shared_components",
    "reading_order",
    "assemble_page_prompts",
    "assemble_box_prompts",
]
