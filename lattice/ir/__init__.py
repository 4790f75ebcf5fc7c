"""Core data models for layouts, projects and generation."""

from lattice.ir.lib import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    MIN_HEIGHT,
    MIN_WIDTH,
    STAGGER_OFFSET,
    STAGGER_ORIGIN,
    AIConfig,
    BorderRadius,
    Box,
    BoxSpec,
    DesignTokens,
    Direction,
    Framework,
    GenerateRequest,
    GenerateResponse,
    GenerationResult,
    GenerationVersion,
    InteractionStates,
    Language,
    LatticeModel,
    LatticeProject,
    NamingConvention,
    Page,
    ProjectContext,
    SharedComponent,
    Spacing,
    UILibrary,
    Usage,
    format_number,
    new_id,
)

__all__ = [
    # Layout
    "Box",
    "BoxSpec",
    "InteractionStates",
    "Direction",
    "Page",
    "SharedComponent",
    # Context
    "ProjectContext",
    "DesignTokens",
    "Framework",
    "Language",
    "UILibrary",
    "BorderRadius",
    "Spacing",
    "NamingConvention",
    # Generation
    "GenerationVersion",
    "GenerationResult",
    "GenerateRequest",
    "GenerateResponse",
    "Usage",
    "AIConfig",
    # Snapshot
    "LatticeProject",
    "LatticeModel",
    # Helpers and constants
    "new_id",
    "format_number",
    "DEFAULT_WIDTH",
    "DEFAULT_HEIGHT",
    "STAGGER_OFFSET",
    "STAGGER_ORIGIN",
    "MIN_WIDTH",
    "MIN_HEIGHT",
]
