"""Tests for file naming and tree rendering."""

import pytest

from lattice.ir import Box, BoxSpec, Direction, Page, SharedComponent

from .lib import format_box_tree, suggest_file_name, suggest_file_path


class TestSuggestFileName:
    """Tests for suggest_file_name."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "label,framework,language,convention,expected",
        [
            ("Hero Section", "react", "typescript", None, "HeroSection.tsx"),
            ("Hero Section", "nextjs", "javascript", "PascalCase", "HeroSection.jsx"),
            ("Hero Section", "vue", "typescript", "kebab-case", "hero-section.vue"),
            ("Hero Section", "nuxt", "javascript", None, "HeroSection.vue"),
            ("Pricing TABLE", "sveltekit", "typescript", None, "PricingTable.svelte"),
            ("CTA: Sign-up!", "react", "typescript", None, "CtaSignup.tsx"),
            ("", "react", "typescript", None, "Component.tsx"),
            ("!!!", "svelte", "javascript", "kebab-case", "Component.svelte"),
            ("My Widget", "vanilla", "typescript", None, "MyWidget.tsx"),
        ],
    )
    def test_names(self, label, framework, language, convention, expected):
        assert suggest_file_name(label, framework, language, convention) == expected


class TestSuggestFilePath:
    """Tests for suggest_file_path."""

    @pytest.mark.unit
    def test_default_directory(self):
        assert suggest_file_path("Hero", None, "react", "typescript") == "src/components/Hero.tsx"

    @pytest.mark.unit
    def test_trailing_slashes_trimmed(self):
        assert suggest_file_path("Hero", "app/ui//", "vue", "typescript") == "app/ui/Hero.vue"

    @pytest.mark.unit
    def test_empty_directory_uses_default(self):
        assert suggest_file_path("Hero", "", "react", "javascript") == "src/components/Hero.jsx"


class TestFormatBoxTree:
    """Tests for format_box_tree."""

    @pytest.mark.unit
    def test_empty_page(self):
        page = Page(name="Home", route="/")
        assert format_box_tree(page, {}) == "Home (/)\n(empty)"

    @pytest.mark.unit
    def test_nested_tree(self):
        boxes = {
            "body": Box(id="body", label="Body", order=1),
            "header": Box(
                id="header",
                label="Header",
                order=0,
                direction=Direction.ROW,
                child_ids=["nav", "logo"],
            ),
            "logo": Box(id="logo", label="Logo", order=0, parent_id="header"),
            "nav": Box(
                id="nav",
                label="Nav",
                order=1,
                parent_id="header",
                shared_component_id="sc_nav",
                spec=BoxSpec(intent="Primary links"),
            ),
        }
        page = Page(name="Landing", box_ids=["body", "header"])
        shared = {"sc_nav": SharedComponent(id="sc_nav", name="Navigation")}

        assert format_box_tree(page, boxes, shared) == "\n".join(
            [
                "Landing",
                "├── Header [row]",
                "│   ├── Logo",
                '│   └── Nav <shared: "Navigation"> - Primary links',
                "└── Body",
            ]
        )

    @pytest.mark.unit
    def test_unknown_ids_skipped(self):
        page = Page(name="Home", box_ids=["ghost", "a"])
        boxes = {"a": Box(id="a", label="")}
        assert format_box_tree(page, boxes) == "Home\n└── Untitled"
