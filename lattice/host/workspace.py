"""Filesystem workspace: answers the host's pass-through messages.

Projects persist to ``.lattice/project.json`` under the workspace root.
Generated files are written relative to the root and never outside it.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from lattice.ir import Framework, Language, LatticeProject, UILibrary
from lattice.protocol import (
    DetectedProject,
    FileSavedMessage,
    FileWriteCancelledMessage,
    InboundMessage,
    OptionalPathPayload,
    OutboundMessage,
    PathPayload,
    PathSelectedMessage,
    ProjectDetectedMessage,
    ProjectLoadedMessage,
    SaveProjectMessage,
    SelectOutputPathMessage,
    WriteFileMessage,
)

logger = logging.getLogger(__name__)

PROJECT_DIR = ".lattice"
PROJECT_FILE = "project.json"
DEFAULT_OUTPUT_DIR = "src/components"

# Checked in order; meta-frameworks before their base framework
_FRAMEWORK_PACKAGES = (
    ("next", Framework.NEXTJS),
    ("nuxt", Framework.NUXT),
    ("@sveltejs/kit", Framework.SVELTEKIT),
    ("react", Framework.REACT),
    ("vue", Framework.VUE),
    ("svelte", Framework.SVELTE),
)

_UI_LIBRARY_PACKAGES = (
    ("@mui/material", UILibrary.MUI),
    ("styled-components", UILibrary.STYLED_COMPONENTS),
    ("tailwindcss", UILibrary.TAILWIND),
)


class FileWorkspace:
    """Workspace collaborator backed by a project directory.

    Attributes:
        root: Workspace root directory.

    Example:
        >>> workspace = FileWorkspace(Path.cwd())
        >>> session = HostSession(AIService(), send, workspace=workspace)
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()
        self._handlers = {
            "detectProject": self._on_detect,
            "saveProject": self._on_save,
            "loadProject": self._on_load,
            "writeFile": self._on_write,
            "selectOutputPath": self._on_select_path,
        }

    @property
    def project_path(self) -> Path:
        return self.root / PROJECT_DIR / PROJECT_FILE

    async def __call__(self, message: OutboundMessage) -> InboundMessage | None:
        handler = self._handlers.get(message.type)
        if handler is None:
            raise ValueError(f"Workspace cannot handle {message.type}")
        return handler(message)

    # =========================================================================
    # Project Detection
    # =========================================================================

    def detect_project(self) -> DetectedProject:
        """Inspect package.json and tsconfig.json for framework facts."""
        package = self._read_package_json()
        if package is None:
            return DetectedProject()

        deps: dict[str, Any] = {}
        for key in ("dependencies", "devDependencies", "peerDependencies"):
            section = package.get(key)
            if isinstance(section, dict):
                deps.update(section)

        framework = next((fw for name, fw in _FRAMEWORK_PACKAGES if name in deps), None)

        ui_library = None
        if (self.root / "components.json").exists():
            ui_library = UILibrary.SHADCN
        else:
            ui_library = next((lib for name, lib in _UI_LIBRARY_PACKAGES if name in deps), None)

        is_typescript = "typescript" in deps or (self.root / "tsconfig.json").exists()
        return DetectedProject(
            framework=framework,
            language=Language.TYPESCRIPT if is_typescript else Language.JAVASCRIPT,
            ui_library=ui_library,
            root_path=str(self.root),
        )

    def _read_package_json(self) -> dict[str, Any] | None:
        path = self.root / "package.json"
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring invalid package.json: {e}")
            return None
        return data if isinstance(data, dict) else None

    # =========================================================================
    # Persistence
    # =========================================================================

    def save_project(self, project: LatticeProject) -> Path:
        self.project_path.parent.mkdir(parents=True, exist_ok=True)
        self.project_path.write_text(
            json.dumps(project.to_json_dict(), indent=2) + "\n", encoding="utf-8"
        )
        logger.info(f"Project saved to {self.project_path}")
        return self.project_path

    def load_project(self) -> LatticeProject | None:
        """Load the saved project, or None when absent or unreadable."""
        if not self.project_path.exists():
            return None
        try:
            return LatticeProject.model_validate_json(
                self.project_path.read_text(encoding="utf-8")
            )
        except ValidationError as e:
            logger.warning(f"Ignoring invalid {self.project_path}: {e.error_count()} error(s)")
            return None

    # =========================================================================
    # File Output
    # =========================================================================

    def resolve(self, relative: str) -> Path:
        """Resolve a path inside the workspace.

        Raises:
            ValueError: If the path escapes the workspace root.
        """
        target = (self.root / relative).resolve()
        if not target.is_relative_to(self.root):
            raise ValueError(f"Path is outside the workspace: {relative}")
        return target

    def write_file(self, relative: str, content: str, *, overwrite: bool = True) -> Path | None:
        """Write a file. Returns None when it exists and ``overwrite`` is False."""
        target = self.resolve(relative)
        if target.exists() and not overwrite:
            logger.info(f"Not overwriting existing {target}")
            return None
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {target}")
        return target

    # =========================================================================
    # Message Handlers
    # =========================================================================

    def _on_detect(self, message: OutboundMessage) -> InboundMessage:
        return ProjectDetectedMessage(payload=self.detect_project())

    def _on_save(self, message: SaveProjectMessage) -> None:
        self.save_project(message.payload)

    def _on_load(self, message: OutboundMessage) -> InboundMessage:
        return ProjectLoadedMessage(payload=self.load_project())

    def _on_write(self, message: WriteFileMessage) -> InboundMessage:
        # A confirmed write never replaces an existing file without a prompt,
        # and the host has no prompt, so it is cancelled instead.
        written = self.write_file(
            message.payload.path,
            message.payload.content,
            overwrite=not message.payload.confirm,
        )
        if written is None:
            return FileWriteCancelledMessage()
        relative = written.relative_to(self.root).as_posix()
        return FileSavedMessage(payload=PathPayload(path=relative))

    def _on_select_path(self, message: SelectOutputPathMessage) -> InboundMessage:
        name = message.payload.suggested_name
        if not name:
            return PathSelectedMessage(payload=OptionalPathPayload(path=None))
        path = Path(DEFAULT_OUTPUT_DIR) / Path(name).name
        return PathSelectedMessage(payload=OptionalPathPayload(path=path.as_posix()))


__all__ = ["FileWorkspace", "PROJECT_DIR", "PROJECT_FILE", "DEFAULT_OUTPUT_DIR"]
