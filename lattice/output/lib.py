"""Helpers for turning generated code into files and reviewing layouts.

File names follow the project's naming convention and framework file
extension. ``format_box_tree`` renders a page's layout as an indented
text tree for terminal review.
"""

import re
from collections.abc import Mapping

from lattice.ir import Box, Framework, Language, NamingConvention, Page, SharedComponent

DEFAULT_OUTPUT_DIRECTORY = "src/components"
FALLBACK_COMPONENT_NAME = "Component"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\s]")

# Tree drawing
_BRANCH = "├── "
_LAST_BRANCH = "└── "
_PIPE = "│   "
_SPACE = "    "


# =============================================================================
# File Names
# =============================================================================


def _words(label: str) -> list[str]:
    return _UNSAFE_CHARS.sub("", label).split()


def to_pascal_case(label: str) -> str:
    """'Hero Section' -> 'HeroSection'."""
    return "".join(word[0].upper() + word[1:].lower() for word in _words(label))


def to_kebab_case(label: str) -> str:
    """'Hero Section' -> 'hero-section'."""
    return "-".join(word.lower() for word in _words(label))


def file_extension(framework: Framework | str, language: Language | str) -> str:
    framework = Framework(framework)
    if framework in (Framework.VUE, Framework.NUXT):
        return ".vue"
    if framework in (Framework.SVELTE, Framework.SVELTEKIT):
        return ".svelte"
    return ".tsx" if Language(language) is Language.TYPESCRIPT else ".jsx"


def suggest_file_name(
    label: str,
    framework: Framework | str,
    language: Language | str,
    convention: NamingConvention | str | None = None,
) -> str:
    """Suggest a component file name for a box label.

    Args:
        label: Box label, e.g. "Hero Section".
        framework: Target framework (selects the extension).
        language: TypeScript or JavaScript (React-family extension).
        convention: PascalCase (default) or kebab-case.

    Returns:
        File name such as ``HeroSection.tsx`` or ``hero-section.vue``.
        Labels without usable characters fall back to ``Component``.

    Example:
        >>> suggest_file_name("Hero Section", "vue", "typescript", "kebab-case")
        'hero-section.vue'
    """
    convention = NamingConvention(convention or NamingConvention.PASCAL_CASE)
    if convention is NamingConvention.KEBAB_CASE:
        base = to_kebab_case(label)
    else:
        base = to_pascal_case(label)
    return f"{base or FALLBACK_COMPONENT_NAME}{file_extension(framework, language)}"


def suggest_file_path(
    label: str,
    output_directory: str | None,
    framework: Framework | str,
    language: Language | str,
    convention: NamingConvention | str | None = None,
) -> str:
    """Relative file path for a box label under the output directory.

    Example:
        >>> suggest_file_path("Hero Section", None, "react", "typescript")
        'src/components/HeroSection.tsx'
    """
    directory = (output_directory or "").rstrip("/") or DEFAULT_OUTPUT_DIRECTORY
    return f"{directory}/{suggest_file_name(label, framework, language, convention)}"


# =============================================================================
# Tree Rendering
# =============================================================================


def format_box_tree(
    page: Page,
    boxes: Mapping[str, Box],
    shared_components: Mapping[str, SharedComponent] | None = None,
) -> str:
    """Render a page's box forest as a text tree.

    Example output::

        Home (/)
        ├── Header [row]
        │   └── Logo
        └── Body
    """
    shared_components = shared_components or {}
    route = f" ({page.route})" if page.route else ""
    lines = [f"{page.name}{route}"]

    roots = _sorted(page.box_ids, boxes)
    if not roots:
        lines.append("(empty)")
        return "\n".join(lines)

    def walk(box: Box, prefix: str, last: bool) -> None:
        branch = _LAST_BRANCH if last else _BRANCH
        lines.append(prefix + branch + _describe(box, shared_components))
        children = _sorted(box.child_ids, boxes)
        child_prefix = prefix + (_SPACE if last else _PIPE)
        for index, child in enumerate(children):
            walk(child, child_prefix, index == len(children) - 1)

    for index, root in enumerate(roots):
        walk(root, "", index == len(roots) - 1)
    return "\n".join(lines)


def _describe(box: Box, shared_components: Mapping[str, SharedComponent]) -> str:
    text = box.label or "Untitled"
    if box.child_ids and box.direction == "row":
        text += " [row]"
    component = shared_components.get(box.shared_component_id or "")
    if component is not None:
        text += f' <shared: "{component.name}">'
    if box.spec is not None and box.spec.intent:
        text += f" - {box.spec.intent}"
    return text


def _sorted(box_ids: list[str], boxes: Mapping[str, Box]) -> list[Box]:
    return sorted((boxes[i] for i in box_ids if i in boxes), key=lambda b: b.order)


__all__ = [
    "DEFAULT_OUTPUT_DIRECTORY",
    "FALLBACK_COMPONENT_NAME",
    "to_pascal_case",
    "to_kebab_case",
    "file_extension",
    "suggest_file_name",
    "suggest_file_path",
    "format_box_tree",
]
