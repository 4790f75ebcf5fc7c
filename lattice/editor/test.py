"""Tests for the Editor composition root and notifications."""

import pytest
from pydantic import ValidationError

from lattice.generation import GenerationStatus
from lattice.ir import BoxSpec
from lattice.project import DEFAULT_PAGE_ID
from lattice.prompt import ROLE_FRAMING
from lattice.protocol import (
    INBOUND_TYPES,
    GenerateMessage,
    GetAIConfigMessage,
    LoadProjectMessage,
    ReadyMessage,
    SaveProjectMessage,
    WriteFileMessage,
    dump_message,
)

from .lib import Editor, project_slug
from .notifications import NotificationCenter, NotificationLevel

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def outbox() -> list:
    return []


@pytest.fixture
def editor(outbox) -> Editor:
    return Editor(send=outbox.append)


def chunk(request_id: str, text: str) -> dict:
    return {"type": "generateChunk", "id": request_id, "payload": {"text": text}}


def complete(request_id: str, code: str) -> dict:
    return {"type": "generateComplete", "id": request_id, "payload": {"code": code}}


def error(request_id: str, message: str) -> dict:
    return {"type": "generateError", "id": request_id, "payload": {"message": message}}


def assert_shared_links_consistent(editor: Editor) -> None:
    """Box.shared_component_id and instance sets agree in both directions."""
    for component in editor.model.shared_components.values():
        for box_id in component.instance_ids:
            assert editor.tree.get(box_id) is not None, f"dangling instance {box_id}"
            assert editor.tree.get(box_id).shared_component_id == component.id
    for box in editor.tree.boxes.values():
        if box.shared_component_id is not None:
            component = editor.model.get_shared_component(box.shared_component_id)
            assert component is not None
            assert box.id in component.instance_ids


def assert_pages_consistent(editor: Editor) -> None:
    listed = [i for page in editor.model.pages for i in page.box_ids]
    assert len(listed) == len(set(listed))
    for box_id in listed:
        box = editor.tree.get(box_id)
        assert box is not None and box.is_root


# =============================================================================
# Handler Table
# =============================================================================


class TestHandlerTable:
    """Tests that every inbound message type is handled."""

    @pytest.mark.unit
    def test_covers_inbound_union(self, editor):
        assert editor.handled_types == INBOUND_TYPES

    @pytest.mark.unit
    def test_unknown_type_rejected(self, editor):
        with pytest.raises(ValidationError):
            editor.handle({"type": "bogus"})

    @pytest.mark.unit
    def test_connect_requests_state(self, editor, outbox):
        editor.connect()
        assert [type(m) for m in outbox] == [ReadyMessage, LoadProjectMessage, GetAIConfigMessage]
        editor.handle({"type": "initialized"})
        assert editor.initialized


# =============================================================================
# Composite Box Operations
# =============================================================================


class TestBoxOperations:
    """Tests for operations spanning the tree and the project model."""

    @pytest.mark.unit
    def test_add_root_and_child(self, editor):
        root = editor.add_box(DEFAULT_PAGE_ID)
        child = editor.add_box(DEFAULT_PAGE_ID, root)
        assert editor.model.get_page(DEFAULT_PAGE_ID).box_ids == [root]
        assert editor.tree.get(child).parent_id == root
        assert editor.page_of(child) == DEFAULT_PAGE_ID
        assert_pages_consistent(editor)

    @pytest.mark.unit
    def test_add_to_unknown_page(self, editor):
        assert editor.add_box("page_missing") is None
        assert len(editor.tree) == 0

    @pytest.mark.unit
    def test_delete_box_unlinks_everything(self, editor):
        root = editor.add_box(DEFAULT_PAGE_ID)
        child = editor.add_box(DEFAULT_PAGE_ID, root)
        component_id = editor.make_shared(child, "Card")
        request_id = editor.generate_box(child)
        editor.handle(complete(request_id, "<Card/>"))

        removed = editor.delete_box(root)

        assert set(removed) == {root, child}
        assert editor.model.get_page(DEFAULT_PAGE_ID).box_ids == []
        assert editor.model.get_shared_component(component_id).instance_ids == set()
        assert editor.generation.get_result(child) is None
        assert len(editor.tree) == 0

    @pytest.mark.unit
    def test_delete_root_renumbers_page_roots(self, editor):
        first, second, third = (editor.add_box(DEFAULT_PAGE_ID) for _ in range(3))
        editor.delete_box(first)
        assert [editor.tree.get(i).order for i in (second, third)] == [0, 1]

    @pytest.mark.unit
    def test_delete_pageless_root_leaves_page_orders(self, editor):
        other = editor.model.add_page("About")
        home_roots = [editor.add_box(DEFAULT_PAGE_ID) for _ in range(2)]
        about_roots = [editor.add_box(other) for _ in range(2)]
        stray = editor.tree.add()

        assert editor.delete_box(stray) == [stray]

        assert [editor.tree.get(i).order for i in home_roots] == [0, 1]
        assert [editor.tree.get(i).order for i in about_roots] == [0, 1]

    @pytest.mark.unit
    def test_duplicate_root(self, editor):
        original = editor.add_box(DEFAULT_PAGE_ID)
        editor.add_box(DEFAULT_PAGE_ID, original)
        copy = editor.duplicate_box(original)
        assert editor.model.get_page(DEFAULT_PAGE_ID).box_ids == [original, copy]
        assert editor.tree.get(copy).child_ids == []
        assert_pages_consistent(editor)

    @pytest.mark.unit
    def test_duplicate_instance_joins_component(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        component_id = editor.make_shared(box)
        copy = editor.duplicate_box(box)
        assert editor.model.get_shared_component(component_id).instance_ids == {box, copy}
        assert_shared_links_consistent(editor)

    @pytest.mark.unit
    def test_move_between_root_and_nested(self, editor):
        first = editor.add_box(DEFAULT_PAGE_ID)
        second = editor.add_box(DEFAULT_PAGE_ID)
        page = editor.model.get_page(DEFAULT_PAGE_ID)

        assert editor.move_box(second, first, 0)
        assert page.box_ids == [first]
        assert editor.tree.get(first).child_ids == [second]

        assert editor.move_box(second, None, 0)
        assert page.box_ids == [second, first]
        assert editor.tree.get(second).order == 0
        assert editor.tree.get(first).child_ids == []
        assert_pages_consistent(editor)

    @pytest.mark.unit
    def test_move_under_own_descendant_rejected(self, editor):
        root = editor.add_box(DEFAULT_PAGE_ID)
        child = editor.add_box(DEFAULT_PAGE_ID, root)
        assert not editor.move_box(root, child, 0)
        assert editor.model.get_page(DEFAULT_PAGE_ID).box_ids == [root]

    @pytest.mark.unit
    def test_move_to_other_page(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        other = editor.model.add_page("About", "/about")
        assert editor.move_box(box, None, 0, page_id=other)
        assert editor.model.get_page(DEFAULT_PAGE_ID).box_ids == []
        assert editor.model.get_page(other).box_ids == [box]

    @pytest.mark.unit
    def test_delete_page_cascades(self, editor):
        other = editor.model.add_page("About")
        kept = [editor.add_box(other) for _ in range(2)]
        doomed = editor.add_box(DEFAULT_PAGE_ID)
        nested = editor.add_box(DEFAULT_PAGE_ID, doomed)
        component_id = editor.make_shared(nested)

        removed = editor.delete_page(DEFAULT_PAGE_ID)

        assert set(removed) == {doomed, nested}
        assert editor.model.get_page(DEFAULT_PAGE_ID) is None
        assert editor.model.get_shared_component(component_id).instance_ids == set()
        assert [editor.tree.get(i).order for i in kept] == [0, 1]
        assert editor.delete_page(DEFAULT_PAGE_ID) == []


# =============================================================================
# Shared Components
# =============================================================================


class TestSharedComponents:
    """Tests for shared component lifecycle."""

    @pytest.mark.unit
    def test_make_shared_links_both_ways(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        editor.tree.update(box, label="Nav")
        editor.update_spec(box, BoxSpec(intent="Primary navigation"))

        component_id = editor.make_shared(box)

        component = editor.model.get_shared_component(component_id)
        assert component.name == "Nav"
        assert component.spec.intent == "Primary navigation"
        assert editor.make_shared(box) == component_id
        assert_shared_links_consistent(editor)

    @pytest.mark.unit
    def test_insert_and_detach_instance(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        editor.update_spec(box, BoxSpec(intent="Footer links"))
        component_id = editor.make_shared(box, "Footer")

        instance = editor.insert_instance(component_id, DEFAULT_PAGE_ID)
        assert editor.tree.get(instance).label == "Footer"
        assert editor.tree.get(instance).spec.intent == "Footer links"
        assert_shared_links_consistent(editor)

        assert editor.detach_instance(instance)
        assert editor.tree.get(instance).shared_component_id is None
        assert editor.tree.get(instance).spec.intent == "Footer links"
        assert not editor.detach_instance(instance)
        assert_shared_links_consistent(editor)

    @pytest.mark.unit
    def test_delete_component_clears_instances(self, editor):
        boxes = [editor.add_box(DEFAULT_PAGE_ID) for _ in range(3)]
        component_id = editor.make_shared(boxes[0], "Card")
        for box in boxes[1:]:
            editor.tree.update(box, shared_component_id=component_id)
            editor.model.add_instance(component_id, box)

        assert editor.delete_shared_component(component_id)
        assert all(editor.tree.get(b).shared_component_id is None for b in boxes)
        assert not editor.delete_shared_component(component_id)


# =============================================================================
# Generation
# =============================================================================


class TestGeneration:
    """Tests for generation requests and reply handling."""

    @pytest.mark.unit
    def test_generate_box_sends_request(self, editor, outbox):
        box = editor.add_box(DEFAULT_PAGE_ID)
        editor.tree.update(box, label="Hero")

        request_id = editor.generate_box(box)

        message = outbox[-1]
        assert isinstance(message, GenerateMessage)
        assert message.id == request_id
        assert message.payload.prompt.startswith("# Component: Hero")
        assert message.payload.system_prompt.startswith(ROLE_FRAMING)
        assert message.payload.stream is True
        assert editor.generation.is_generating(box)
        assert editor.last_prompt.target == "box"
        assert editor.last_prompt.target_name == "Hero"

    @pytest.mark.unit
    def test_unknown_targets(self, editor, outbox):
        assert editor.generate_box("missing") is None
        assert editor.generate_page("missing") is None
        assert outbox == []

    @pytest.mark.unit
    def test_request_ids_unique(self, editor):
        assert editor.next_request_id() != editor.next_request_id()

    @pytest.mark.unit
    def test_page_generation_broadcasts(self, editor):
        header = editor.add_box(DEFAULT_PAGE_ID)
        body = editor.add_box(DEFAULT_PAGE_ID)
        component_id = editor.make_shared(body, "Body Block")

        request_id = editor.generate_page(DEFAULT_PAGE_ID)
        assert editor.last_prompt.user_prompt.startswith("# Page: Home (/)")

        editor.handle(chunk(request_id, "<Pa"))
        editor.handle(chunk(request_id, "ge/>"))
        assert editor.generation.buffer(header) == "<Page/>"
        assert editor.generation.buffer(body) == "<Page/>"

        editor.handle(complete(request_id, "<Page/>"))
        for target in (header, body):
            version = editor.generation.get_result(target).current
            assert version.code == "<Page/>"
            assert version.provider == "ai"
        assert editor.model.get_shared_component(component_id).latest_code is None
        assert editor.notifications.notifications[-1].message == "Code generation complete"

    @pytest.mark.unit
    def test_page_result_keeps_shared_reference_code(self, editor, outbox):
        header = editor.add_box(DEFAULT_PAGE_ID)
        editor.tree.update(header, label="Header")
        component_id = editor.make_shared(header, "Nav")
        box_request = editor.generate_box(header)
        editor.handle(complete(box_request, "export function Nav() {}"))

        page_request = editor.generate_page(DEFAULT_PAGE_ID)
        editor.handle(complete(page_request, "export function HomePage() {}"))

        component = editor.model.get_shared_component(component_id)
        assert component.latest_code == "export function Nav() {}"
        assert editor.current_code(header) == "export function HomePage() {}"

        editor.generate_box(header)
        assert "HomePage" not in outbox[-1].payload.prompt

    @pytest.mark.unit
    def test_empty_page_targets_page(self, editor):
        request_id = editor.generate_page(DEFAULT_PAGE_ID)
        assert editor.generation.targets_for(request_id) == [DEFAULT_PAGE_ID]
        editor.handle(complete(request_id, "<Shell/>"))
        assert editor.current_code(DEFAULT_PAGE_ID) == "<Shell/>"

    @pytest.mark.unit
    def test_superseded_request_discarded(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        stale = editor.generate_box(box)
        fresh = editor.generate_box(box)

        editor.handle(chunk(stale, "old"))
        editor.handle(complete(stale, "old"))
        assert editor.generation.get_result(box) is None
        assert editor.generation.buffer(box) == ""

        editor.handle(complete(fresh, "new"))
        result = editor.generation.get_result(box)
        assert result.current.code == "new"
        assert result.history == []

    @pytest.mark.unit
    def test_error_fails_target(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        request_id = editor.generate_box(box)
        editor.handle(chunk(request_id, "partial"))
        editor.handle(error(request_id, "OpenAI quota exceeded"))

        assert editor.generation.status(box) is GenerationStatus.FAILED
        assert editor.generation.get_result(box) is None
        latest = editor.notifications.notifications[-1]
        assert latest.level is NotificationLevel.ERROR
        assert latest.message == "Generation failed: OpenAI quota exceeded"

    @pytest.mark.unit
    def test_replies_for_unknown_requests_ignored(self, editor):
        editor.handle(chunk("req_404", "x"))
        editor.handle(complete("req_404", "x"))
        editor.handle(error("req_404", "x"))
        assert editor.generation.results == {}
        assert editor.notifications.notifications == []

    @pytest.mark.unit
    def test_revert(self, editor):
        box = editor.add_box(DEFAULT_PAGE_ID)
        for code in ("v1", "v2"):
            editor.handle(complete(editor.generate_box(box), code))
        result = editor.generation.get_result(box)
        assert len(result.history) == 1

        assert editor.revert(box, result.history[0].id)
        assert editor.current_code(box) == "v1"
        assert result.history[0].code == "v2"

    @pytest.mark.unit
    def test_versions_labelled_from_ai_config(self, editor):
        editor.handle(
            {
                "type": "aiConfig",
                "payload": {"provider": "gemini", "model": "gemini-2.5-flash", "hasApiKey": True},
            }
        )
        box = editor.add_box(DEFAULT_PAGE_ID)
        editor.handle(complete(editor.generate_box(box), "x"))

        version = editor.generation.get_result(box).current
        assert (version.provider, version.model) == ("gemini", "gemini-2.5-flash")
        assert editor.ai_config.api_key is None


# =============================================================================
# Host Requests and Snapshots
# =============================================================================


class TestHostRequests:
    """Tests for persistence and file output requests."""

    @pytest.mark.unit
    def test_save_code_uses_suggested_path(self, editor, outbox):
        box = editor.add_box(DEFAULT_PAGE_ID)
        editor.tree.update(box, label="Hero Section")
        assert not editor.save_code(box)

        editor.handle(complete(editor.generate_box(box), "<Hero/>"))
        assert editor.save_code(box)

        message = outbox[-1]
        assert isinstance(message, WriteFileMessage)
        assert message.payload.path == "src/components/HeroSection.tsx"
        assert message.payload.content == "<Hero/>"
        assert message.payload.confirm is True

    @pytest.mark.unit
    def test_file_replies_notify(self, editor):
        editor.handle({"type": "fileSaved", "payload": {"path": "src/components/Hero.tsx"}})
        assert editor.saved_path == "src/components/Hero.tsx"
        editor.handle({"type": "pathSelected", "payload": {"path": "src/Other.tsx"}})
        assert editor.selected_path == "src/Other.tsx"
        editor.handle({"type": "fileWriteCancelled"})
        editor.handle({"type": "error", "payload": {"message": "disk full"}})
        assert [n.message for n in editor.notifications.notifications] == [
            "File saved: src/components/Hero.tsx",
            "File write cancelled",
            "disk full",
        ]

    @pytest.mark.unit
    def test_snapshot_roundtrip(self, editor, outbox):
        editor.context.name = "My Shop"
        root = editor.add_box(DEFAULT_PAGE_ID)
        editor.make_shared(editor.add_box(DEFAULT_PAGE_ID, root), "Card")
        editor.handle(complete(editor.generate_page(DEFAULT_PAGE_ID), "<Page/>"))

        snapshot = editor.to_project()
        assert snapshot.id == "my-shop"

        editor.delete_box(root)
        assert root in snapshot.boxes

        restored = Editor()
        restored.handle({"type": "projectLoaded", "payload": dump_message(snapshot)})
        assert restored.to_project() == snapshot
        assert restored.notifications.notifications[-1].message == "Project loaded"

        editor.save()
        assert isinstance(outbox[-1], SaveProjectMessage)

    @pytest.mark.unit
    def test_from_project_copies(self, editor):
        editor.add_box(DEFAULT_PAGE_ID)
        snapshot = editor.to_project()
        clone = Editor.from_project(snapshot)
        clone.add_box(DEFAULT_PAGE_ID)
        assert len(snapshot.boxes) == 1
        assert len(clone.tree) == 2

    @pytest.mark.unit
    def test_project_loaded_without_project(self, editor):
        editor.add_box(DEFAULT_PAGE_ID)
        editor.handle({"type": "projectLoaded"})
        assert len(editor.tree) == 1

    @pytest.mark.unit
    def test_apply_detected_project(self, editor):
        assert not editor.apply_detected_project()
        editor.handle(
            {"type": "projectDetected", "payload": {"framework": "vue", "language": "javascript"}}
        )
        assert editor.apply_detected_project()
        assert editor.context.framework == "vue"
        assert editor.context.language == "javascript"
        assert editor.context.ui_library == "tailwind"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name,expected", [("My Shop", "my-shop"), ("  Admin   Panel ", "admin-panel"), ("", "untitled")]
    )
    def test_project_slug(self, name, expected):
        assert project_slug(name) == expected


class TestNotificationCenter:
    """Tests for the capped notification list."""

    @pytest.mark.unit
    def test_keeps_newest_five(self):
        center = NotificationCenter()
        for index in range(7):
            center.info(f"m{index}")
        assert [n.message for n in center.notifications] == ["m2", "m3", "m4", "m5", "m6"]

    @pytest.mark.unit
    def test_remove_and_clear(self):
        center = NotificationCenter()
        keep = center.warning("keep")
        drop = center.error("drop")
        assert center.remove(drop)
        assert not center.remove(drop)
        assert [n.id for n in center.notifications] == [keep]
        center.clear()
        assert center.notifications == []
