"""Tests for prompt assembly."""

import pytest

from lattice.ir import (
    Box,
    BoxSpec,
    InteractionStates,
    Page,
    ProjectContext,
    SharedComponent,
)
from lattice.prompt import (
    EMPTY_PAGE_INSTRUCTION,
    ROLE_FRAMING,
    assemble_box_prompts,
    assemble_page_prompts,
    build_box_prompt,
    build_page_prompt,
    build_system_prompt,
    describe_spec,
    reading_order,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def header_body_page() -> tuple[Page, dict[str, Box]]:
    """Header at y=0, Body at y=260 containing a CTA Button."""
    header = Box(id="a", label="Header", order=0, x=0, y=0, width=800, height=120)
    body = Box(
        id="b",
        label="Body",
        order=1,
        x=0,
        y=260,
        width=800,
        height=400,
        child_ids=["c"],
    )
    cta = Box(
        id="c",
        label="CTA Button",
        parent_id="b",
        spec=BoxSpec(intent="primary call to action button"),
    )
    page = Page(id="page_home", name="Home", route="/", box_ids=["a", "b"])
    return page, {"a": header, "b": body, "c": cta}


@pytest.fixture
def shared_page() -> tuple[Page, dict[str, Box], dict[str, SharedComponent]]:
    """Three boxes instantiate the same shared card."""
    boxes = {
        "r": Box(id="r", label="Grid", child_ids=["c1", "c2", "c3"], direction="row"),
        "c1": Box(id="c1", label="Card", parent_id="r", order=0, shared_component_id="sc"),
        "c2": Box(id="c2", label="Card", parent_id="r", order=1, shared_component_id="sc"),
        "c3": Box(id="c3", label="Card", parent_id="r", order=2, shared_component_id="sc"),
    }
    shared = {
        "sc": SharedComponent(
            id="sc",
            name="ProductCard",
            spec=BoxSpec(intent="show a product"),
            latest_code="export function ProductCard() {}",
            instance_ids={"c1", "c2", "c3", "elsewhere"},
        )
    }
    page = Page(id="p", name="Shop", box_ids=["r"])
    return page, boxes, shared


# =============================================================================
# System Prompt
# =============================================================================


class TestSystemPrompt:
    """Tests for build_system_prompt."""

    @pytest.mark.unit
    def test_default_context_golden(self):
        """Default context yields the exact expected text."""
        expected = "\n\n".join(
            [
                ROLE_FRAMING,
                "Framework: React\nLanguage: TypeScript",
                "UI Library: Use Tailwind CSS for styling and components.",
                "Design Tokens:\n"
                "  Primary: #2563eb\n"
                "  Secondary: #64748b\n"
                "  Accent: #f59e0b\n"
                "  Background: #ffffff\n"
                "  Text: #0f172a\n"
                "  Font: sans\n"
                "  Border Radius: md\n"
                "  Spacing: normal",
                'Style Tone: The design should feel "minimalist".',
                "Output Rules:\n"
                "- Return ONLY the component code. No explanations, no markdown fences, no extra commentary.\n"
                "- Include all necessary imports at the top of the file.\n"
                "- Use clear, descriptive variable and function names.\n"
                "- Add brief JSDoc or comments only where the logic is non-obvious.\n"
                "- Make the component responsive by default.\n"
                "- Handle edge cases (empty states, loading, errors) where specified.\n"
                "- Export the component as a named export.\n"
                "- Use functional components with hooks.\n"
                "- Define prop types using TypeScript interfaces.",
            ]
        )
        assert build_system_prompt(ProjectContext()) == expected

    @pytest.mark.unit
    def test_deterministic(self):
        context = ProjectContext(constraints=["No external fonts"], additional_notes="Dark")
        assert build_system_prompt(context) == build_system_prompt(context.model_copy())

    @pytest.mark.unit
    def test_optional_sections_and_order(self):
        context = ProjectContext(
            framework="vue",
            language="javascript",
            ui_library="none",
            style_tone="",
            constraints=["WCAG AA", "No icons"],
            additional_notes="Target kiosks",
            component_naming_convention="kebab-case",
        )
        prompt = build_system_prompt(context)

        assert "Framework: Vue 3\nLanguage: JavaScript" in prompt
        assert "UI Library" not in prompt
        assert "Style Tone" not in prompt
        assert "Constraints:\n- WCAG AA\n- No icons" in prompt
        assert "Additional Notes: Target kiosks" in prompt
        assert "Component Naming: Use kebab-case for component names and file names." in prompt
        assert "- Use <script setup> syntax with Composition API." in prompt
        assert "defineProps" not in prompt
        assert (
            prompt.index("Constraints")
            < prompt.index("Additional Notes")
            < prompt.index("Component Naming")
            < prompt.index("Output Rules")
        )

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "framework,name,rule",
        [
            ("nextjs", "Next.js (App Router)", "named export"),
            ("nuxt", "Nuxt 3", "defineProps with TypeScript generics"),
            ("sveltekit", "SvelteKit", '<script lang="ts">'),
            ("svelte", "Svelte", "Svelte 5 runes"),
        ],
    )
    def test_framework_rules(self, framework, name, rule):
        prompt = build_system_prompt(ProjectContext(framework=framework))
        assert f"Framework: {name}\n" in prompt
        assert rule in prompt

    @pytest.mark.unit
    def test_vanilla_has_only_base_rules(self):
        prompt = build_system_prompt(ProjectContext(framework="vanilla"))
        assert "vanilla HTML/CSS/JS" in prompt
        assert prompt.endswith("- Handle edge cases (empty states, loading, errors) where specified.")


# =============================================================================
# Page Prompt
# =============================================================================


class TestPagePrompt:
    """Tests for build_page_prompt."""

    @pytest.mark.unit
    def test_empty_page(self):
        page = Page(id="p", name="Blank", route="/blank")
        prompt = build_page_prompt(page, {})
        assert prompt == (
            "# Page: Blank (/blank)\n\n"
            "Generate the component code for this page based on the following layout specification.\n\n"
            + EMPTY_PAGE_INSTRUCTION
        )
        assert "## Layout" not in prompt
        assert "## Instructions" not in prompt

    @pytest.mark.unit
    def test_page_without_route(self):
        prompt = build_page_prompt(Page(id="p", name="Blank"), {})
        assert prompt.startswith("# Page: Blank\n\n")

    @pytest.mark.unit
    def test_header_body_cta_order(self, header_body_page):
        page, boxes = header_body_page
        prompt = build_page_prompt(page, boxes)

        header = prompt.index("### Header")
        body = prompt.index("### Body")
        cta = prompt.index("  #### CTA Button")
        intent = prompt.index("  Intent: primary call to action button")
        instructions = prompt.index("## Instructions")
        assert header < body < cta < intent < instructions

        assert "Position: x=0, y=0, size=800x120" in prompt
        assert "Position: x=0, y=260, size=800x400" in prompt
        assert "The page contains 2 top-level section(s)" in prompt
        assert "Layout: Contains 1 child region(s) in a vertical column." in prompt
        assert "Sections positioned higher (smaller y) should appear first." in prompt
        assert prompt.endswith("Render order (top to bottom):\n1. Header\n2. Body")

    @pytest.mark.unit
    def test_roots_sorted_by_order(self, header_body_page):
        page, boxes = header_body_page
        page.box_ids = ["b", "a"]
        prompt = build_page_prompt(page, boxes)
        assert prompt.index("### Header") < prompt.index("### Body")

    @pytest.mark.unit
    def test_shared_component_deduplicated(self, shared_page):
        page, boxes, shared = shared_page
        prompt = build_page_prompt(page, boxes, shared)

        assert prompt.count("### ProductCard") == 1
        assert prompt.count('[Shared Component: "ProductCard"]') == 3
        assert "Used 3 time(s) on this page." in prompt
        assert "Existing implementation:\n```\nexport function ProductCard() {}\n```" in prompt
        assert prompt.index("## Shared Components") < prompt.index("## Layout")
        assert "reuse their existing implementation" in prompt
        assert "in a horizontal row" in prompt

    @pytest.mark.unit
    def test_shared_order_is_first_seen(self):
        boxes = {
            "r1": Box(id="r1", order=0, child_ids=["k"], shared_component_id="second"),
            "k": Box(id="k", parent_id="r1", shared_component_id="first"),
            "r2": Box(id="r2", order=1, shared_component_id="first"),
        }
        shared = {
            "first": SharedComponent(id="first", name="Alpha"),
            "second": SharedComponent(id="second", name="Beta"),
        }
        prompt = build_page_prompt(Page(id="p", name="P", box_ids=["r1", "r2"]), boxes, shared)
        assert prompt.index("### Beta") < prompt.index("### Alpha")

    @pytest.mark.unit
    def test_no_shared_section_without_components(self, header_body_page):
        page, boxes = header_body_page
        prompt = build_page_prompt(page, boxes)
        assert "## Shared Components" not in prompt
        assert "reuse their existing implementation" not in prompt

    @pytest.mark.unit
    def test_unnamed_section(self):
        boxes = {"a": Box(id="a")}
        prompt = build_page_prompt(Page(id="p", name="P", box_ids=["a"]), boxes)
        assert "### Unnamed Section" in prompt


class TestReadingOrder:
    """Tests for visual row grouping."""

    @pytest.mark.unit
    def test_side_by_side_row(self):
        sidebar = Box(id="s", label="Sidebar", x=0, y=100)
        content = Box(id="c", label="Content", x=300, y=110)
        header = Box(id="h", label="Header", x=0, y=0)
        rows = reading_order([content, sidebar, header])
        assert [[b.id for b in row] for row in rows] == [["h"], ["s", "c"]]

    @pytest.mark.unit
    def test_row_rendered_in_instructions(self):
        boxes = {
            "s": Box(id="s", label="Sidebar", order=0, x=0, y=100),
            "c": Box(id="c", label="Content", order=1, x=300, y=100),
        }
        prompt = build_page_prompt(Page(id="p", name="P", box_ids=["s", "c"]), boxes)
        assert "1. Sidebar | Content (side by side in one row, left to right)" in prompt


# =============================================================================
# Box Prompt
# =============================================================================


class TestBoxPrompt:
    """Tests for build_box_prompt."""

    @pytest.mark.unit
    def test_basic(self, header_body_page):
        _, boxes = header_body_page
        prompt = build_box_prompt(boxes["b"], boxes)
        assert prompt.startswith("# Component: Body\n\n")
        assert "### Body" in prompt
        assert "  #### CTA Button" in prompt
        assert "Generate a single, self-contained component for this section." in prompt

    @pytest.mark.unit
    def test_nested_box_has_no_position(self, header_body_page):
        _, boxes = header_body_page
        prompt = build_box_prompt(boxes["c"], boxes)
        assert "#### CTA Button" in prompt
        assert "Position:" not in prompt

    @pytest.mark.unit
    def test_untitled(self):
        assert build_box_prompt(Box(), {}).startswith("# Component: Untitled")

    @pytest.mark.unit
    def test_shared_instance_with_code(self, shared_page):
        _, boxes, shared = shared_page
        prompt = build_box_prompt(boxes["c1"], boxes, shared)
        assert 'This is an instance of the shared component "ProductCard".' in prompt
        assert "## Existing Implementation" in prompt
        assert "export function ProductCard() {}" in prompt

    @pytest.mark.unit
    def test_shared_instance_without_code(self, shared_page):
        _, boxes, shared = shared_page
        shared["sc"].latest_code = None
        prompt = build_box_prompt(boxes["c1"], boxes, shared)
        assert "instance of the shared component" in prompt
        assert "## Existing Implementation" not in prompt


class TestDescribeSpec:
    """Tests for spec rendering."""

    @pytest.mark.unit
    def test_full_spec(self):
        spec = BoxSpec(
            intent="list orders",
            data_shape="Order[]",
            behavior="paginates",
            interactions=InteractionStates(hover="highlight", loading="  ", empty="No orders"),
            refinements=["denser rows", " "],
        )
        assert describe_spec(spec, "  ") == "\n".join(
            [
                "  Intent: list orders",
                "  Data Shape: Order[]",
                "  Behavior: paginates",
                "  Interaction States:",
                "    hover: highlight",
                "    empty: No orders",
                "  Refinements:",
                "    - denser rows",
            ]
        )

    @pytest.mark.unit
    def test_empty_spec(self):
        assert describe_spec(BoxSpec()) == ""


class TestPromptPairs:
    """Tests for assembled prompt pairs."""

    @pytest.mark.unit
    def test_page_pair(self, header_body_page):
        page, boxes = header_body_page
        pair = assemble_page_prompts(page, boxes, ProjectContext())
        assert pair.system_prompt == build_system_prompt(ProjectContext())
        assert pair.user_prompt == build_page_prompt(page, boxes)
        assert pair.total_tokens_estimate > 0

    @pytest.mark.unit
    def test_box_pair(self, header_body_page):
        _, boxes = header_body_page
        pair = assemble_box_prompts(boxes["a"], boxes, ProjectContext())
        assert pair.user_prompt.startswith("# Component: Header")
