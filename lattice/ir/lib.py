"""Core data models shared by the layout, project and generation layers.

Every model serializes to camelCase JSON so a project snapshot or protocol
message round-trips with the UI unchanged, while Python code uses
snake_case attribute names.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic.alias_generators import to_camel

# Default dimensions for new root boxes
DEFAULT_WIDTH = 320
DEFAULT_HEIGHT = 200
STAGGER_OFFSET = 40
STAGGER_ORIGIN = 80

# Resize floor for any box
MIN_WIDTH = 120
MIN_HEIGHT = 60


def new_id(prefix: str = "") -> str:
    """Generate a fresh identifier, optionally prefixed (e.g. ``page_``)."""
    token = uuid4().hex
    if prefix:
        return f"{prefix}{token[:8]}"
    return token


class LatticeModel(BaseModel):
    """Base model: camelCase aliases, snake_case attributes, enum values stored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        validate_assignment=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# Enumerations
# =============================================================================


class Direction(str, Enum):
    """Flow direction of a box's children (CSS flex-direction)."""

    ROW = "row"
    COLUMN = "column"


class Framework(str, Enum):
    """Target frontend framework for generated code."""

    REACT = "react"
    VUE = "vue"
    SVELTE = "svelte"
    NEXTJS = "nextjs"
    NUXT = "nuxt"
    SVELTEKIT = "sveltekit"
    VANILLA = "vanilla"


class Language(str, Enum):
    TYPESCRIPT = "typescript"
    JAVASCRIPT = "javascript"


class UILibrary(str, Enum):
    """Styling / component library used by generated code."""

    TAILWIND = "tailwind"
    SHADCN = "shadcn"
    MUI = "mui"
    CSS_MODULES = "css-modules"
    STYLED_COMPONENTS = "styled-components"
    NONE = "none"


class BorderRadius(str, Enum):
    NONE = "none"
    SM = "sm"
    MD = "md"
    LG = "lg"
    FULL = "full"


class Spacing(str, Enum):
    TIGHT = "tight"
    NORMAL = "normal"
    SPACIOUS = "spacious"


class NamingConvention(str, Enum):
    PASCAL_CASE = "PascalCase"
    KEBAB_CASE = "kebab-case"


# =============================================================================
# Layout Entities
# =============================================================================


class InteractionStates(LatticeModel):
    """Free-text description per interaction state. Unset states are None."""

    hover: str | None = None
    loading: str | None = None
    error: str | None = None
    empty: str | None = None
    success: str | None = None


class BoxSpec(LatticeModel):
    """Natural-language specification attached to a box.

    Attributes:
        intent: What the region is for.
        interactions: Per interaction-state descriptions.
        data_shape: Description of the data the region displays.
        behavior: Description of how the region behaves.
        refinements: Ordered free-text refinements appended over time.
    """

    intent: str = ""
    interactions: InteractionStates = Field(default_factory=InteractionStates)
    data_shape: str | None = None
    behavior: str | None = None
    refinements: list[str] = Field(default_factory=list)


class Box(LatticeModel):
    """A node in a page's layout forest.

    Root boxes (``parent_id`` is None) are positioned freeform on the page
    canvas by ``x``/``y``/``width``/``height``. Nested boxes flow inside their
    parent using ``order``, ``grow`` and ``basis``.

    Attributes:
        id: Unique identifier.
        label: Display label.
        order: Index within the sibling group.
        grow: Flex-grow factor when nested.
        basis: Optional fixed flex-basis when nested (CSS length).
        x: Canvas x position (authoritative for root boxes only).
        y: Canvas y position (authoritative for root boxes only).
        width: Canvas width (authoritative for root boxes only).
        height: Canvas height (authoritative for root boxes only).
        direction: Flow direction for children.
        gap: Spacing between children.
        padding: Inner padding.
        parent_id: Containing box, or None for a page root.
        child_ids: Ordered child identifiers.
        spec: Optional natural-language specification.
        shared_component_id: Shared component this box instantiates.
    """

    id: str = Field(default_factory=new_id)
    label: str = ""
    order: int = 0
    grow: float = 1
    basis: str | None = None
    x: float = STAGGER_ORIGIN
    y: float = STAGGER_ORIGIN
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    direction: Direction = Direction.COLUMN
    gap: float = 2
    padding: float = 2
    parent_id: str | None = None
    child_ids: list[str] = Field(default_factory=list)
    spec: BoxSpec | None = None
    shared_component_id: str | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class Page(LatticeModel):
    """A page owning an ordered list of root boxes."""

    id: str = Field(default_factory=lambda: new_id("page_"))
    name: str
    route: str | None = None
    root_direction: Direction = Direction.COLUMN
    box_ids: list[str] = Field(default_factory=list)


class SharedComponent(LatticeModel):
    """A named, reusable spec instantiated by reference from boxes.

    Attributes:
        id: Unique identifier.
        name: Display name.
        spec: Canonical specification.
        latest_code: Most recently generated implementation, if any.
        instance_ids: Boxes whose ``shared_component_id`` points here.
    """

    id: str = Field(default_factory=lambda: new_id("sc_"))
    name: str
    spec: BoxSpec = Field(default_factory=BoxSpec)
    latest_code: str | None = None
    instance_ids: set[str] = Field(default_factory=set)


# =============================================================================
# Project Context
# =============================================================================


class DesignTokens(LatticeModel):
    primary_color: str = "#2563eb"
    secondary_color: str = "#64748b"
    accent_color: str = "#f59e0b"
    background_color: str = "#ffffff"
    text_color: str = "#0f172a"
    font_family: str = "sans"
    border_radius: BorderRadius = BorderRadius.MD
    spacing: Spacing = Spacing.NORMAL


class ProjectContext(LatticeModel):
    """Project-wide settings that shape the system prompt.

    Attributes:
        name: Project name.
        framework: Target framework.
        language: TypeScript or JavaScript.
        ui_library: Styling library, or ``none``.
        design_tokens: Colours, font, radius and spacing.
        style_tone: Free-text tone ("minimalist", "playful", ...).
        constraints: Hard constraints listed verbatim in the prompt.
        additional_notes: Free-text notes.
        output_directory: Where generated files are suggested to go.
        component_naming_convention: PascalCase or kebab-case.
    """

    name: str = "Untitled Project"
    framework: Framework = Framework.REACT
    language: Language = Language.TYPESCRIPT
    ui_library: UILibrary = UILibrary.TAILWIND
    design_tokens: DesignTokens = Field(default_factory=DesignTokens)
    style_tone: str = "minimalist"
    constraints: list[str] = Field(default_factory=list)
    additional_notes: str | None = None
    output_directory: str | None = None
    component_naming_convention: NamingConvention | None = None


# =============================================================================
# Generation
# =============================================================================


class GenerationVersion(LatticeModel):
    """One immutable generated-code artifact."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    prompt: str
    timestamp: datetime
    provider: str
    model: str

    @classmethod
    def create(
        cls, code: str, prompt: str, provider: str, model: str
    ) -> "GenerationVersion":
        """Factory method to create a new version with generated ID."""
        return cls(
            id=str(uuid4()),
            code=code,
            prompt=prompt,
            timestamp=datetime.now(UTC),
            provider=provider,
            model=model,
        )


class GenerationResult(LatticeModel):
    """Current version and superseded versions (most recent first) for a target."""

    target_id: str
    current: GenerationVersion
    history: list[GenerationVersion] = Field(default_factory=list)


class Usage(LatticeModel):
    prompt_tokens: int
    completion_tokens: int


class GenerateRequest(LatticeModel):
    """A single generation call as sent from the UI to the host."""

    prompt: str
    system_prompt: str = ""
    model: str = ""
    temperature: float | None = None
    max_tokens: int | None = None
    stream: bool | None = None


class GenerateResponse(LatticeModel):
    code: str
    usage: Usage | None = None


class AIConfig(LatticeModel):
    """Provider selection and sampling settings.

    The API key is a ``SecretStr`` so it never renders in reprs or logs.
    ``has_api_key`` lets a masked config tell the UI a key is stored
    without revealing it.
    """

    provider: str = "openai"
    model: str = "gpt-4o"
    api_key: SecretStr | None = None
    temperature: float = 0.7
    max_tokens: int = 4096
    has_api_key: bool = False

    def masked(self) -> "AIConfig":
        """Copy with the key removed and ``has_api_key`` set accordingly."""
        return self.model_copy(
            update={
                "api_key": None,
                "has_api_key": self.has_api_key or bool(self.secret()),
            }
        )

    def secret(self) -> str | None:
        """Plain-text key, or None."""
        if self.api_key is None:
            return None
        return self.api_key.get_secret_value() or None


# =============================================================================
# Project Snapshot
# =============================================================================


class LatticeProject(LatticeModel):
    """Serializable snapshot of a whole project."""

    id: str = Field(default_factory=new_id)
    context: ProjectContext = Field(default_factory=ProjectContext)
    pages: list[Page] = Field(default_factory=list)
    boxes: dict[str, Box] = Field(default_factory=dict)
    shared_components: dict[str, SharedComponent] = Field(default_factory=dict)
    generations: dict[str, GenerationResult] = Field(default_factory=dict)


def format_number(value: float) -> str:
    """Render a coordinate without a trailing ``.0`` for whole numbers."""
    if float(value).is_integer():
        return str(int(value))
    return str(float(value))


__all__ = [
    "DEFAULT_WIDTH",
    "DEFAULT_HEIGHT",
    "STAGGER_OFFSET",
    "STAGGER_ORIGIN",
    "MIN_WIDTH",
    "MIN_HEIGHT",
    "new_id",
    "format_number",
    "LatticeModel",
    "Direction",
    "Framework",
    "Language",
    "UILibrary",
    "BorderRadius",
    "Spacing",
    "NamingConvention",
    "InteractionStates",
    "BoxSpec",
    "Box",
    "Page",
    "SharedComponent",
    "DesignTokens",
    "ProjectContext",
    "GenerationVersion",
    "GenerationResult",
    "Usage",
    "GenerateRequest",
    "GenerateResponse",
    "AIConfig",
    "LatticeProject",
]
