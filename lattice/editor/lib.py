"""Editor: the UI-side composition root.

The Editor owns one BoxTree, ProjectModel, ProjectContext and
GenerationCoordinator. Operations that touch more than one of them
(deleting a box must also unlink its page entry, shared-component
instance and generation state) live here so every cross-entity link
stays consistent. Generation requests go out through a ``send``
callable and replies come back through ``handle()``.
"""

import itertools
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from lattice.generation import GenerationCoordinator
from lattice.ir import (
    AIConfig,
    Box,
    BoxSpec,
    GenerateRequest,
    GenerationVersion,
    LatticeModel,
    LatticeProject,
    ProjectContext,
)
from lattice.layout import BoxTree
from lattice.output import suggest_file_path
from lattice.project import ProjectModel
from lattice.prompt import PromptPair, assemble_box_prompts, assemble_page_prompts
from lattice.protocol import (
    AIConfigMessage,
    DetectedProject,
    ErrorMessage,
    FileSavedMessage,
    FileWriteCancelledMessage,
    GenerateChunkMessage,
    GenerateCompleteMessage,
    GenerateErrorMessage,
    GenerateMessage,
    GetAIConfigMessage,
    InboundMessage,
    InitializedMessage,
    LoadProjectMessage,
    PathSelectedMessage,
    ProjectDetectedMessage,
    ProjectLoadedMessage,
    ReadyMessage,
    SaveProjectMessage,
    SetAIConfigMessage,
    WriteFileMessage,
    WriteFilePayload,
    parse_inbound,
)

from .notifications import NotificationCenter

logger = logging.getLogger(__name__)

SendCallback = Callable[[LatticeModel], Any]

# Version labels used until the host reports its AI settings
UNKNOWN_PROVIDER = "ai"


@dataclass
class LastPrompt:
    """The most recently assembled prompt, kept for display.

    Attributes:
        system_prompt: System prompt that was sent.
        user_prompt: User prompt that was sent.
        target: Whether a page or a single box was generated.
        target_id: Page or box id.
        target_name: Page name or box label.
        timestamp: When the prompt was assembled (UTC).
    """

    system_prompt: str
    user_prompt: str
    target: Literal["page", "box"]
    target_id: str
    target_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


def project_slug(name: str) -> str:
    """'My Shop' -> 'my-shop'; empty names give 'untitled'."""
    return re.sub(r"\s+", "-", name.strip().lower()) or "untitled"


class Editor:
    """Composes the stores and keeps cross-entity links consistent.

    Every inbound message type has exactly one handler, so a reply from
    the host is either applied or, when it belongs to an abandoned
    request, discarded.

    Attributes:
        tree: Box store.
        model: Pages and shared components.
        context: Project-wide settings.
        generation: Streaming state, routing and version history.
        notifications: Messages for the user.
        last_prompt: Prompt of the most recent generation, if any.
        ai_config: Masked AI settings last reported by the host.
        detected_project: Framework facts last reported by the host.
        selected_path: Output path last chosen through the host.
        saved_path: Path of the last file written by the host.

    Example:
        >>> editor = Editor(send=outbox.append)
        >>> hero = editor.add_box(DEFAULT_PAGE_ID)
        >>> request_id = editor.generate_box(hero)
        >>> editor.handle(reply_from_host)
    """

    def __init__(
        self,
        send: SendCallback | None = None,
        *,
        project: LatticeProject | None = None,
    ):
        self._send_callback = send
        self._counter = itertools.count(1)
        self.notifications = NotificationCenter()
        self.last_prompt: LastPrompt | None = None
        self.ai_config: AIConfig | None = None
        self.detected_project: DetectedProject | None = None
        self.selected_path: str | None = None
        self.saved_path: str | None = None
        self.initialized = False

        self.tree = BoxTree()
        self.model = ProjectModel()
        self.context = ProjectContext()
        self.generation = GenerationCoordinator()
        # Page requests produce whole-page code, never a shared component's
        self._page_requests: set[str] = set()
        if project is not None:
            self.load_project(project)

        self._handlers: dict[str, Callable[[Any], None]] = {
            "initialized": self._on_initialized,
            "projectDetected": self._on_project_detected,
            "projectLoaded": self._on_project_loaded,
            "generateChunk": self._on_generate_chunk,
            "generateComplete": self._on_generate_complete,
            "generateError": self._on_generate_error,
            "fileSaved": self._on_file_saved,
            "fileWriteCancelled": self._on_file_write_cancelled,
            "pathSelected": self._on_path_selected,
            "aiConfig": self._on_ai_config,
            "error": self._on_error,
        }

    @classmethod
    def from_project(
        cls, project: LatticeProject, send: SendCallback | None = None
    ) -> "Editor":
        return cls(send, project=project)

    @property
    def handled_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    # =========================================================================
    # Snapshots
    # =========================================================================

    def to_project(self) -> LatticeProject:
        """Snapshot the whole editor state. The snapshot shares no objects."""
        return LatticeProject(
            id=project_slug(self.context.name),
            context=self.context,
            pages=self.model.pages,
            boxes=self.tree.boxes,
            shared_components=self.model.shared_components,
            generations=self.generation.results,
        ).model_copy(deep=True)

    def load_project(self, project: LatticeProject) -> None:
        """Replace the editor state with a copy of ``project``."""
        project = project.model_copy(deep=True)
        self.tree = BoxTree(project.boxes)
        self.model = ProjectModel(project.pages, project.shared_components)
        self.context = project.context
        self.generation = GenerationCoordinator(project.generations)
        logger.info(
            f"Loaded project {project.id} ({len(project.pages)} page(s), "
            f"{len(project.boxes)} box(es))"
        )

    # =========================================================================
    # Boxes
    # =========================================================================

    def page_of(self, box_id: str) -> str | None:
        """Page id owning a box, found through its root ancestor."""
        box = self.tree.get(box_id)
        while box is not None and box.parent_id is not None:
            box = self.tree.get(box.parent_id)
        if box is None:
            return None
        page = self.model.page_for_box(box.id)
        return page.id if page else None

    def add_box(self, page_id: str, parent_id: str | None = None) -> str | None:
        """Add an empty box to a page, as a root or under ``parent_id``."""
        page = self.model.get_page(page_id)
        if page is None:
            return None
        if parent_id is not None:
            return self.tree.add(parent_id)

        box_id = self.tree.add(root_group=page.box_ids)
        self.model.add_box_to_page(page_id, box_id)
        return box_id

    def delete_box(self, box_id: str) -> list[str]:
        """Delete a box with its subtree and every link to them.

        Returns:
            Ids of the removed boxes.
        """
        page = self.model.page_for_box(box_id)
        removed = self.tree.remove(box_id, root_group=page.box_ids if page else ())
        if page is not None:
            self.model.remove_box_from_page(page.id, box_id)
        for removed_id in removed:
            self.model.detach_box(removed_id)
            self.generation.forget(removed_id)
        return removed

    def move_box(
        self,
        box_id: str,
        new_parent_id: str | None,
        index: int,
        *,
        page_id: str | None = None,
    ) -> bool:
        """Reparent a box, keeping page root lists in step.

        Args:
            box_id: Box to move.
            new_parent_id: New container, or None to make it a root.
            index: Position among the new siblings.
            page_id: Page receiving a new root. Defaults to the box's page.
        """
        source_page = self.model.page_for_box(box_id)
        target_page_id = page_id or self.page_of(box_id)
        target_page = self.model.get_page(target_page_id) if target_page_id else None
        if new_parent_id is None and target_page is None:
            return False

        root_group = target_page.box_ids if new_parent_id is None else None
        if not self.tree.move(box_id, new_parent_id, index, root_group=root_group):
            return False

        if source_page is not None:
            self.model.remove_box_from_page(source_page.id, box_id)
        if new_parent_id is None:
            self.model.add_box_to_page(target_page.id, box_id, index)
        return True

    def duplicate_box(self, box_id: str) -> str | None:
        """Copy a box (without children) next to the original."""
        box = self.tree.get(box_id)
        if box is None:
            return None

        page = self.model.page_for_box(box_id) if box.is_root else None
        copy_id = self.tree.duplicate(box_id, root_group=page.box_ids if page else None)
        if page is not None:
            self.model.add_box_to_page(page.id, copy_id)
        if box.shared_component_id is not None:
            self.model.add_instance(box.shared_component_id, copy_id)
        return copy_id

    def update_spec(self, box_id: str, spec: BoxSpec | None) -> bool:
        return self.tree.update_spec(box_id, spec)

    # =========================================================================
    # Pages
    # =========================================================================

    def delete_page(self, page_id: str) -> list[str]:
        """Delete a page with all of its boxes.

        Returns:
            Ids of the removed boxes.
        """
        page = self.model.remove_page(page_id)
        if page is None:
            return []

        removed: list[str] = []
        for root_id in list(page.box_ids):
            removed.extend(self.tree.remove(root_id, root_group=page.box_ids))
        for removed_id in removed:
            self.model.detach_box(removed_id)
            self.generation.forget(removed_id)
        self.generation.forget(page_id)
        return removed

    # =========================================================================
    # Shared Components
    # =========================================================================

    def make_shared(self, box_id: str, name: str | None = None) -> str | None:
        """Turn a box into the first instance of a new shared component.

        Returns:
            The component id (the existing one when the box is already an
            instance), or None for unknown boxes.
        """
        box = self.tree.get(box_id)
        if box is None:
            return None
        if box.shared_component_id is not None:
            return box.shared_component_id

        component_id = self.model.create_shared_component_from_box(
            name or box.label or "Shared Component", box.spec, box_id
        )
        self.tree.update(box_id, shared_component_id=component_id)
        return component_id

    def insert_instance(self, component_id: str, page_id: str) -> str | None:
        """Place a new root box instantiating a shared component on a page."""
        component = self.model.get_shared_component(component_id)
        if component is None:
            return None
        box_id = self.add_box(page_id)
        if box_id is None:
            return None

        self.tree.update(box_id, label=component.name, shared_component_id=component_id)
        self.tree.update_spec(box_id, component.spec.model_copy(deep=True))
        self.model.add_instance(component_id, box_id)
        return box_id

    def detach_instance(self, box_id: str) -> bool:
        """Unlink a box from its shared component, keeping its own spec."""
        box = self.tree.get(box_id)
        if box is None or box.shared_component_id is None:
            return False
        self.model.remove_instance(box.shared_component_id, box_id)
        self.tree.update(box_id, shared_component_id=None)
        return True

    def delete_shared_component(self, component_id: str) -> bool:
        """Delete a component and clear the link on every former instance."""
        component = self.model.remove_shared_component(component_id)
        if component is None:
            return False
        for box_id in component.instance_ids:
            box = self.tree.get(box_id)
            if box is not None and box.shared_component_id == component_id:
                self.tree.update(box_id, shared_component_id=None)
        return True

    # =========================================================================
    # Generation
    # =========================================================================

    def next_request_id(self) -> str:
        return f"req_{next(self._counter)}_{int(time.time() * 1000)}"

    def generate_box(self, box_id: str) -> str | None:
        """Send a generation request for one box and its subtree.

        Returns:
            The request id, or None for unknown boxes.
        """
        box = self.tree.get(box_id)
        if box is None:
            return None
        prompts = assemble_box_prompts(
            box, self.tree.boxes, self.context, self.model.shared_components
        )
        return self._request(prompts, "box", box_id, box.label or "Untitled", [box_id])

    def generate_page(self, page_id: str) -> str | None:
        """Send one generation request for a whole page.

        Every root box of the page is a target of the request. An empty
        page targets the page id itself.

        Returns:
            The request id, or None for unknown pages.
        """
        page = self.model.get_page(page_id)
        if page is None:
            return None
        prompts = assemble_page_prompts(
            page, self.tree.boxes, self.context, self.model.shared_components
        )
        targets = [i for i in page.box_ids if i in self.tree] or [page_id]
        return self._request(prompts, "page", page_id, page.name, targets)

    def revert(self, target_id: str, version_id: str) -> bool:
        return self.generation.revert(target_id, version_id)

    def current_code(self, target_id: str) -> str | None:
        result = self.generation.get_result(target_id)
        return result.current.code if result else None

    def _request(
        self,
        prompts: PromptPair,
        target: Literal["page", "box"],
        target_id: str,
        target_name: str,
        targets: list[str],
    ) -> str:
        self.last_prompt = LastPrompt(
            system_prompt=prompts.system_prompt,
            user_prompt=prompts.user_prompt,
            target=target,
            target_id=target_id,
            target_name=target_name,
        )
        provider, model = self._version_labels()
        request_id = self.next_request_id()
        self.generation.begin(
            request_id, targets, prompt=prompts.user_prompt, provider=provider, model=model
        )
        if target == "page":
            self._page_requests.add(request_id)
        logger.info(f"Generating {target} {target_id} as {request_id} ({len(targets)} target(s))")
        self._send(
            GenerateMessage(
                id=request_id,
                payload=GenerateRequest(
                    prompt=prompts.user_prompt,
                    system_prompt=prompts.system_prompt,
                    stream=True,
                ),
            )
        )
        return request_id

    def _version_labels(self) -> tuple[str, str]:
        if self.ai_config is None:
            return UNKNOWN_PROVIDER, ""
        return self.ai_config.provider, self.ai_config.model

    # =========================================================================
    # Host Requests
    # =========================================================================

    def connect(self) -> None:
        """Announce the UI and ask for the saved project and settings."""
        self._send(ReadyMessage())
        self._send(LoadProjectMessage())
        self._send(GetAIConfigMessage())

    def save(self) -> None:
        self._send(SaveProjectMessage(payload=self.to_project()))

    def set_ai_config(self, config: AIConfig) -> None:
        self._send(SetAIConfigMessage(payload=config))

    def save_code(self, target_id: str, path: str | None = None, *, confirm: bool = True) -> bool:
        """Ask the host to write a target's current code to a file.

        The path defaults to one suggested from the box label and the
        project's output settings.

        Returns:
            False when the target has no generated code.
        """
        code = self.current_code(target_id)
        if code is None:
            return False
        if path is None:
            path = self.suggested_path(target_id)
        self._send(
            WriteFileMessage(payload=WriteFilePayload(path=path, content=code, confirm=confirm))
        )
        return True

    def suggested_path(self, target_id: str) -> str:
        box = self.tree.get(target_id)
        if box is not None:
            label = box.label
        else:
            page = self.model.get_page(target_id)
            label = page.name if page else ""
        return suggest_file_path(
            label,
            self.context.output_directory,
            self.context.framework,
            self.context.language,
            self.context.component_naming_convention,
        )

    def apply_detected_project(self) -> bool:
        """Copy detected framework facts into the project context."""
        detected = self.detected_project
        if detected is None:
            return False
        updates = {
            name: value
            for name, value in (
                ("framework", detected.framework),
                ("language", detected.language),
                ("ui_library", detected.ui_library),
            )
            if value is not None
        }
        self.context = self.context.model_copy(update=updates)
        return bool(updates)

    def _send(self, message: LatticeModel) -> None:
        if self._send_callback is None:
            logger.debug(f"No host connected; dropped {message.type}")
            return
        self._send_callback(message)

    # =========================================================================
    # Inbound Messages
    # =========================================================================

    def handle(self, message: InboundMessage | str | bytes | dict[str, Any]) -> None:
        """Apply one host -> UI message.

        Raises:
            pydantic.ValidationError: If a raw message is malformed.
        """
        if isinstance(message, (str, bytes, dict)):
            message = parse_inbound(message)
        self._handlers[message.type](message)

    def _on_initialized(self, message: InitializedMessage) -> None:
        self.initialized = True

    def _on_project_detected(self, message: ProjectDetectedMessage) -> None:
        self.detected_project = message.payload

    def _on_project_loaded(self, message: ProjectLoadedMessage) -> None:
        if message.payload is None:
            return
        self.load_project(message.payload)
        self.notifications.info("Project loaded")

    def _on_generate_chunk(self, message: GenerateChunkMessage) -> None:
        self.generation.on_chunk(message.id, message.payload.text)

    def _on_generate_complete(self, message: GenerateCompleteMessage) -> None:
        targets = self.generation.targets_for(message.id)
        versions = self.generation.on_complete(message.id, message.payload.code)
        from_page = message.id in self._page_requests
        self._page_requests.discard(message.id)
        if not versions:
            return
        if not from_page:
            for target_id, version in zip(targets, versions):
                self._mirror_to_shared(target_id, version)
        self.notifications.success("Code generation complete")

    def _on_generate_error(self, message: GenerateErrorMessage) -> None:
        self._page_requests.discard(message.id)
        if not self.generation.on_error(message.id):
            return
        self.notifications.error(f"Generation failed: {message.payload.message}")

    def _on_file_saved(self, message: FileSavedMessage) -> None:
        self.saved_path = message.payload.path
        self.notifications.success(f"File saved: {message.payload.path}")

    def _on_file_write_cancelled(self, message: FileWriteCancelledMessage) -> None:
        self.notifications.info("File write cancelled")

    def _on_path_selected(self, message: PathSelectedMessage) -> None:
        self.selected_path = message.payload.path

    def _on_ai_config(self, message: AIConfigMessage) -> None:
        self.ai_config = message.payload.masked()

    def _on_error(self, message: ErrorMessage) -> None:
        self.notifications.error(message.payload.message)

    def _mirror_to_shared(self, target_id: str, version: GenerationVersion) -> None:
        box: Box | None = self.tree.get(target_id)
        if box is None or box.shared_component_id is None:
            return
        self.model.update_shared_component(box.shared_component_id, latest_code=version.code)


__all__ = ["Editor", "LastPrompt", "SendCallback", "project_slug"]
