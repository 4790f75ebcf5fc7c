"""Prompt assembly for code generation.

Pure functions that turn a page (or single box) plus the project context
into the system and user prompts sent to a model. Output is fully
determined by the inputs: siblings are ordered by ``Box.order`` (stable
on ties) and shared components by first occurrence in a pre-order walk of
the page's root boxes.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from lattice.ir import (
    Box,
    BoxSpec,
    DesignTokens,
    Direction,
    Framework,
    Language,
    Page,
    ProjectContext,
    SharedComponent,
    UILibrary,
    format_number,
)

ROLE_FRAMING = (
    "You are an expert frontend developer. Generate clean, production-ready "
    "component code based on the layout specification provided."
)

EMPTY_PAGE_INSTRUCTION = (
    "The page is currently empty. Generate a basic page shell/wrapper component."
)

# Roots whose top edges are within this many pixels share a row
ROW_TOLERANCE = 24

FRAMEWORK_NAMES: dict[Framework, str] = {
    Framework.REACT: "React",
    Framework.VUE: "Vue 3",
    Framework.SVELTE: "Svelte",
    Framework.NEXTJS: "Next.js (App Router)",
    Framework.NUXT: "Nuxt 3",
    Framework.SVELTEKIT: "SvelteKit",
    Framework.VANILLA: "vanilla HTML/CSS/JS",
}

UI_LIBRARY_NAMES: dict[UILibrary, str] = {
    UILibrary.TAILWIND: "Tailwind CSS",
    UILibrary.SHADCN: "shadcn/ui (with Tailwind CSS)",
    UILibrary.MUI: "Material UI (MUI)",
    UILibrary.CSS_MODULES: "CSS Modules",
    UILibrary.STYLED_COMPONENTS: "styled-components",
}

BASE_OUTPUT_RULES = [
    "- Return ONLY the component code. No explanations, no markdown fences, no extra commentary.",
    "- Include all necessary imports at the top of the file.",
    "- Use clear, descriptive variable and function names.",
    "- Add brief JSDoc or comments only where the logic is non-obvious.",
    "- Make the component responsive by default.",
    "- Handle edge cases (empty states, loading, errors) where specified.",
]

# (rules for any language, extra rule for TypeScript)
FRAMEWORK_RULES: dict[Framework, tuple[list[str], str]] = {
    Framework.REACT: (
        ["- Export the component as a named export.", "- Use functional components with hooks."],
        "- Define prop types using TypeScript interfaces.",
    ),
    Framework.VUE: (
        ["- Use <script setup> syntax with Composition API."],
        "- Use defineProps with TypeScript generics for prop typing.",
    ),
    Framework.SVELTE: (
        ["- Use Svelte 5 runes syntax ($state, $derived, $effect) if applicable."],
        '- Use <script lang="ts"> for type safety.',
    ),
}
FRAMEWORK_RULES[Framework.NEXTJS] = FRAMEWORK_RULES[Framework.REACT]
FRAMEWORK_RULES[Framework.NUXT] = FRAMEWORK_RULES[Framework.VUE]
FRAMEWORK_RULES[Framework.SVELTEKIT] = FRAMEWORK_RULES[Framework.SVELTE]


@dataclass
class PromptPair:
    """System and user prompt for one generation.

    Attributes:
        system_prompt: Project-wide instructions.
        user_prompt: Page or component specific instructions.
    """

    system_prompt: str
    user_prompt: str

    @property
    def total_tokens_estimate(self) -> int:
        return (len(self.system_prompt) + len(self.user_prompt)) // 4


# =============================================================================
# System Prompt
# =============================================================================


def build_system_prompt(context: ProjectContext) -> str:
    """Build the project-wide system prompt.

    Sections, in order and separated by blank lines: role framing,
    framework and language, UI library (skipped for ``none``), design
    tokens, style tone, constraints, additional notes, naming convention
    and output rules. Empty optional sections are skipped.
    """
    sections = [ROLE_FRAMING, _framework_section(context)]

    ui_library = UILibrary(context.ui_library)
    if ui_library is not UILibrary.NONE:
        sections.append(
            f"UI Library: Use {UI_LIBRARY_NAMES[ui_library]} for styling and components."
        )

    sections.append(_design_tokens_section(context.design_tokens))

    if context.style_tone:
        sections.append(f'Style Tone: The design should feel "{context.style_tone}".')

    if context.constraints:
        sections.append(
            "Constraints:\n" + "\n".join(f"- {c}" for c in context.constraints)
        )

    if context.additional_notes:
        sections.append(f"Additional Notes: {context.additional_notes}")

    if context.component_naming_convention:
        sections.append(
            f"Component Naming: Use {context.component_naming_convention} "
            "for component names and file names."
        )

    sections.append(_output_rules(context))
    return "\n\n".join(sections)


def _framework_section(context: ProjectContext) -> str:
    framework = FRAMEWORK_NAMES[Framework(context.framework)]
    language = "TypeScript" if context.language == Language.TYPESCRIPT else "JavaScript"
    return f"Framework: {framework}\nLanguage: {language}"


def _design_tokens_section(tokens: DesignTokens) -> str:
    return "\n".join(
        [
            "Design Tokens:",
            f"  Primary: {tokens.primary_color}",
            f"  Secondary: {tokens.secondary_color}",
            f"  Accent: {tokens.accent_color}",
            f"  Background: {tokens.background_color}",
            f"  Text: {tokens.text_color}",
            f"  Font: {tokens.font_family}",
            f"  Border Radius: {tokens.border_radius}",
            f"  Spacing: {tokens.spacing}",
        ]
    )


def _output_rules(context: ProjectContext) -> str:
    rules = ["Output Rules:", *BASE_OUTPUT_RULES]
    framework_rules = FRAMEWORK_RULES.get(Framework(context.framework))
    if framework_rules is not None:
        common, typescript_only = framework_rules
        rules.extend(common)
        if context.language == Language.TYPESCRIPT:
            rules.append(typescript_only)
    return "\n".join(rules)


# =============================================================================
# Page Prompt
# =============================================================================


def build_page_prompt(
    page: Page,
    boxes: Mapping[str, Box],
    shared_components: Mapping[str, SharedComponent] | None = None,
) -> str:
    """Build the user prompt for a whole page.

    An empty page yields only the header and the empty-page instruction.
    Otherwise the prompt lists the referenced shared components once
    each, describes every root tree depth-first, and ends with layout
    reconstruction instructions including an explicit render order.

    Args:
        page: Page to describe.
        boxes: Every box of the project keyed by id.
        shared_components: Shared components keyed by id.
    """
    shared_components = shared_components or {}
    route = f" ({page.route})" if page.route else ""
    sections = [
        f"# Page: {page.name}{route}",
        "Generate the component code for this page based on the following layout specification.",
    ]

    roots = _resolve(page.box_ids, boxes)
    if not roots:
        sections.append(EMPTY_PAGE_INSTRUCTION)
        return "\n\n".join(sections)

    referenced = collect_shared_components(roots, boxes, shared_components)
    if referenced:
        usage = _count_instances(roots, boxes)
        sections.append(_shared_components_section(referenced, usage))

    sections.append(
        f"## Layout\n\nThe page contains {len(roots)} top-level section(s), "
        "positioned on a freeform canvas:"
    )
    for root in roots:
        sections.append(describe_box_tree(root, boxes, shared_components))

    sections.append(_page_instructions(roots, bool(referenced)))
    return "\n\n".join(sections)


def collect_shared_components(
    roots: list[Box],
    boxes: Mapping[str, Box],
    shared_components: Mapping[str, SharedComponent],
) -> list[SharedComponent]:
    """Shared components referenced under ``roots``, deduplicated.

    Order is first occurrence in a pre-order walk of ``roots``.
    """
    seen: set[str] = set()
    result: list[SharedComponent] = []
    for box in _walk(roots, boxes):
        component_id = box.shared_component_id
        if component_id is None or component_id in seen:
            continue
        seen.add(component_id)
        component = shared_components.get(component_id)
        if component is not None:
            result.append(component)
    return result


def reading_order(roots: list[Box]) -> list[list[Box]]:
    """Group root boxes into visual rows, top to bottom, left to right.

    A box joins the current row when its y is within ``ROW_TOLERANCE`` of
    the row's first box; rows are then ordered by x.
    """
    rows: list[list[Box]] = []
    for box in sorted(roots, key=lambda b: (b.y, b.x)):
        if rows and abs(box.y - rows[-1][0].y) <= ROW_TOLERANCE:
            rows[-1].append(box)
        else:
            rows.append([box])
    return [sorted(row, key=lambda b: b.x) for row in rows]


def _shared_components_section(
    components: list[SharedComponent], usage: dict[str, int]
) -> str:
    lines = [
        "## Shared Components\n\nThe following shared components are referenced on this page:"
    ]
    for component in components:
        lines.append(f"### {component.name}")
        if component.spec.intent:
            lines.append(f"Intent: {component.spec.intent}")
        if component.latest_code:
            lines.append(f"Existing implementation:\n```\n{component.latest_code}\n```")
        lines.append(f"Used {usage.get(component.id, 0)} time(s) on this page.")
    return "\n\n".join(lines)


def _page_instructions(roots: list[Box], has_shared: bool) -> str:
    text = (
        "## Instructions\n\n"
        "Generate a single page component that includes all the sections described above. "
        "Each top-level section should be a clearly defined area of the page. "
        "Use the spatial positions (x, y, width, height) as hints for relative sizing and ordering, "
        "but render them using standard CSS layout (flexbox/grid), not absolute positioning. "
        "Sections positioned higher (smaller y) should appear first. "
        "Sections side by side (similar y, different x) should be in a row."
    )
    if has_shared:
        text += " For shared components, reuse their existing implementation where available."

    lines = ["Render order (top to bottom):"]
    for number, row in enumerate(reading_order(roots), start=1):
        names = [_display_name(b) for b in row]
        if len(names) == 1:
            lines.append(f"{number}. {names[0]}")
        else:
            lines.append(f"{number}. {' | '.join(names)} (side by side in one row, left to right)")
    return text + "\n\n" + "\n".join(lines)


# =============================================================================
# Box Prompt
# =============================================================================


def build_box_prompt(
    box: Box,
    boxes: Mapping[str, Box],
    shared_components: Mapping[str, SharedComponent] | None = None,
) -> str:
    """Build the user prompt for a single box and its subtree.

    When the box instantiates a shared component that already has code,
    that code is offered as a reference implementation.
    """
    shared_components = shared_components or {}
    sections = [
        f"# Component: {box.label or 'Untitled'}",
        "Generate the component code for this UI section based on the following specification.",
    ]

    component = shared_components.get(box.shared_component_id or "")
    if component is not None:
        sections.append(f'This is an instance of the shared component "{component.name}".')
        if component.latest_code:
            sections.append(
                "## Existing Implementation\n\n"
                "The shared component already has a reference implementation:\n\n"
                f"```\n{component.latest_code}\n```\n\n"
                "You may use this as a starting point or regenerate from scratch "
                "based on the spec below."
            )

    sections.append(describe_box_tree(box, boxes, shared_components))
    sections.append(
        "## Instructions\n\n"
        "Generate a single, self-contained component for this section. "
        "If the section has child regions, include them as part of this component "
        "or as clearly named sub-components within the same file."
    )
    return "\n\n".join(sections)


# =============================================================================
# Tree Description
# =============================================================================


def describe_box_tree(
    box: Box,
    boxes: Mapping[str, Box],
    shared_components: Mapping[str, SharedComponent] | None = None,
    depth: int = 0,
) -> str:
    """Describe a box and its descendants as an indented text block.

    Root boxes include their canvas position and size; nested boxes are
    indented two spaces per level.
    """
    shared_components = shared_components or {}
    indent = "  " * depth
    name = _display_name(box)
    lines: list[str] = []

    if box.parent_id is None:
        lines.append(f"{indent}### {name}")
        lines.append(
            f"{indent}Position: x={format_number(box.x)}, y={format_number(box.y)}, "
            f"size={format_number(box.width)}x{format_number(box.height)}"
        )
    else:
        lines.append(f"{indent}#### {name}")

    component = shared_components.get(box.shared_component_id or "")
    if component is not None:
        lines.append(f'{indent}[Shared Component: "{component.name}"]')

    if box.spec is not None:
        spec_text = describe_spec(box.spec, indent)
        if spec_text:
            lines.append(spec_text)

    children = _resolve(box.child_ids, boxes)
    if children:
        flow = "horizontal row" if box.direction == Direction.ROW else "vertical column"
        lines.append(f"{indent}Layout: Contains {len(children)} child region(s) in a {flow}.")
        for child in children:
            lines.append("")
            lines.append(describe_box_tree(child, boxes, shared_components, depth + 1))

    return "\n".join(lines)


def describe_spec(spec: BoxSpec, indent: str = "") -> str:
    """Render a spec as prompt lines. Empty fields are skipped."""
    lines: list[str] = []
    if spec.intent:
        lines.append(f"{indent}Intent: {spec.intent}")
    if spec.data_shape:
        lines.append(f"{indent}Data Shape: {spec.data_shape}")
    if spec.behavior:
        lines.append(f"{indent}Behavior: {spec.behavior}")

    states = [
        (name, value)
        for name, value in spec.interactions.model_dump().items()
        if value and value.strip()
    ]
    if states:
        lines.append(f"{indent}Interaction States:")
        lines.extend(f"{indent}  {name}: {value}" for name, value in states)

    refinements = [r for r in spec.refinements if r.strip()]
    if refinements:
        lines.append(f"{indent}Refinements:")
        lines.extend(f"{indent}  - {r}" for r in refinements)

    return "\n".join(lines)


# =============================================================================
# Prompt Pairs
# =============================================================================


def assemble_page_prompts(
    page: Page,
    boxes: Mapping[str, Box],
    context: ProjectContext,
    shared_components: Mapping[str, SharedComponent] | None = None,
) -> PromptPair:
    return PromptPair(
        system_prompt=build_system_prompt(context),
        user_prompt=build_page_prompt(page, boxes, shared_components),
    )


def assemble_box_prompts(
    box: Box,
    boxes: Mapping[str, Box],
    context: ProjectContext,
    shared_components: Mapping[str, SharedComponent] | None = None,
) -> PromptPair:
    return PromptPair(
        system_prompt=build_system_prompt(context),
        user_prompt=build_box_prompt(box, boxes, shared_components),
    )


# =============================================================================
# Internal Helpers
# =============================================================================


def _display_name(box: Box) -> str:
    return box.label or "Unnamed Section"


def _resolve(box_ids: list[str], boxes: Mapping[str, Box]) -> list[Box]:
    found = [boxes[i] for i in box_ids if i in boxes]
    return sorted(found, key=lambda b: b.order)


def _walk(roots: list[Box], boxes: Mapping[str, Box]):
    """Pre-order traversal with children sorted by order."""
    for root in roots:
        yield root
        yield from _walk(_resolve(root.child_ids, boxes), boxes)


def _count_instances(roots: list[Box], boxes: Mapping[str, Box]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for box in _walk(roots, boxes):
        if box.shared_component_id is not None:
            counts[box.shared_component_id] = counts.get(box.shared_component_id, 0) + 1
    return counts


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
