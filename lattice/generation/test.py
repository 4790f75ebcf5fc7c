"""Tests for the GenerationCoordinator."""

import random

import pytest

from .lib import GenerationCoordinator, GenerationStatus


@pytest.fixture
def coordinator() -> GenerationCoordinator:
    return GenerationCoordinator()


def _complete(coordinator: GenerationCoordinator, target: str, code: str):
    return coordinator.complete(target, code, "prompt", "openai", "gpt-4o")


# =============================================================================
# State machine
# =============================================================================


class TestStateMachine:
    """Tests for start / append / complete / fail."""

    @pytest.mark.unit
    def test_initially_idle(self, coordinator):
        assert coordinator.status("box") is GenerationStatus.IDLE
        assert not coordinator.is_generating("box")
        assert coordinator.get_result("box") is None

    @pytest.mark.unit
    def test_start_clears_buffer(self, coordinator):
        coordinator.start("box")
        coordinator.append_chunk("box", "abc")
        coordinator.start("box")
        assert coordinator.is_generating("box")
        assert coordinator.buffer("box") == ""

    @pytest.mark.unit
    def test_chunks_accumulate(self, coordinator):
        coordinator.start("box")
        coordinator.append_chunk("box", "export ")
        coordinator.append_chunk("box", "function")
        assert coordinator.buffer("box") == "export function"

    @pytest.mark.unit
    def test_chunk_without_start_is_noop(self, coordinator):
        assert not coordinator.append_chunk("box", "stray")
        assert coordinator.buffer("box") == ""

    @pytest.mark.unit
    def test_chunk_after_complete_is_noop(self, coordinator):
        coordinator.start("box")
        _complete(coordinator, "box", "done")
        assert not coordinator.append_chunk("box", "late")
        assert coordinator.buffer("box") == ""

    @pytest.mark.unit
    def test_complete_twice(self, coordinator):
        """Second completion pushes the first onto history."""
        first = _complete(coordinator, "box", "export function X(){}")
        second = _complete(coordinator, "box", "export function X(){}")
        result = coordinator.get_result("box")
        assert result.current == second
        assert result.history == [first]
        assert coordinator.status("box") is GenerationStatus.COMPLETE

    @pytest.mark.unit
    def test_version_metadata(self, coordinator):
        version = coordinator.complete("box", "code", "the prompt", "anthropic", "claude")
        assert (version.code, version.prompt) == ("code", "the prompt")
        assert (version.provider, version.model) == ("anthropic", "claude")

    @pytest.mark.unit
    def test_fail_keeps_current(self, coordinator):
        version = _complete(coordinator, "box", "good")
        coordinator.start("box")
        coordinator.append_chunk("box", "partial garbage")
        coordinator.fail("box")
        assert coordinator.status("box") is GenerationStatus.FAILED
        assert coordinator.buffer("box") == ""
        assert coordinator.get_result("box").current == version


# =============================================================================
# Revert
# =============================================================================


class TestRevert:
    """Tests for version revert."""

    @pytest.mark.unit
    def test_swaps_into_vacated_slot(self, coordinator):
        v1 = _complete(coordinator, "box", "1")
        v2 = _complete(coordinator, "box", "2")
        v3 = _complete(coordinator, "box", "3")
        # history is [v2, v1]
        assert coordinator.revert("box", v1.id)
        result = coordinator.get_result("box")
        assert result.current == v1
        assert result.history == [v2, v3]

    @pytest.mark.unit
    def test_unknown_version_is_noop(self, coordinator):
        v1 = _complete(coordinator, "box", "1")
        assert not coordinator.revert("box", "missing")
        assert not coordinator.revert("other", v1.id)
        assert coordinator.get_result("box").current == v1

    @pytest.mark.unit
    def test_revert_to_current_is_noop(self, coordinator):
        v1 = _complete(coordinator, "box", "1")
        assert not coordinator.revert("box", v1.id)

    @pytest.mark.unit
    @pytest.mark.parametrize("seed", range(5))
    def test_revert_is_permutation(self, coordinator, seed):
        """History length plus one equals versions created."""
        rng = random.Random(seed)
        created = []
        for step in range(60):
            result = coordinator.get_result("box")
            if result and result.history and rng.random() < 0.5:
                coordinator.revert("box", rng.choice(result.history).id)
            else:
                created.append(_complete(coordinator, "box", str(step)).id)
            result = coordinator.get_result("box")
            ids = [result.current.id] + [v.id for v in result.history]
            assert len(ids) == len(created)
            assert set(ids) == set(created)


# =============================================================================
# Request routing
# =============================================================================


class TestRouting:
    """Tests for request id to target routing."""

    @pytest.mark.unit
    def test_single_target_flow(self, coordinator):
        coordinator.begin("r1", ["box"], prompt="p", provider="openai", model="gpt-4o")
        assert coordinator.on_chunk("r1", "ab") == ["box"]
        versions = coordinator.on_complete("r1", "abc")
        assert len(versions) == 1
        assert versions[0].prompt == "p"
        assert versions[0].provider == "openai"
        assert coordinator.get_result("box").current.code == "abc"
        assert "r1" not in coordinator.pending_requests

    @pytest.mark.unit
    def test_bulk_request_broadcasts(self, coordinator):
        coordinator.begin("page", ["a", "b", "c"], prompt="page prompt")
        assert coordinator.on_chunk("page", "x") == ["a", "b", "c"]
        versions = coordinator.on_complete("page", "code")
        assert [coordinator.get_result(t).current.code for t in "abc"] == ["code"] * 3
        assert len({v.id for v in versions}) == 3
        assert not any(coordinator.is_generating(t) for t in "abc")

    @pytest.mark.unit
    def test_bulk_error_fails_all(self, coordinator):
        coordinator.begin("page", ["a", "b"])
        assert coordinator.on_error("page") == ["a", "b"]
        assert coordinator.status("a") is GenerationStatus.FAILED
        assert coordinator.status("b") is GenerationStatus.FAILED

    @pytest.mark.unit
    def test_unknown_request_discarded(self, coordinator):
        assert coordinator.on_chunk("nope", "x") == []
        assert coordinator.on_complete("nope", "x") == []
        assert coordinator.on_error("nope") == []
        assert coordinator.results == {}

    @pytest.mark.unit
    def test_superseded_request_is_ignored(self, coordinator):
        coordinator.begin("old", ["box"])
        coordinator.begin("new", ["box"])
        assert "old" not in coordinator.pending_requests
        assert coordinator.on_complete("old", "stale") == []
        coordinator.on_complete("new", "fresh")
        assert coordinator.get_result("box").current.code == "fresh"
        assert coordinator.get_result("box").history == []

    @pytest.mark.unit
    def test_partial_supersede_keeps_other_targets(self, coordinator):
        coordinator.begin("page", ["a", "b"])
        coordinator.begin("single", ["a"])
        assert coordinator.targets_for("page") == ["b"]
        coordinator.on_complete("page", "page code")
        assert coordinator.get_result("a") is None
        assert coordinator.is_generating("a")
        assert coordinator.get_result("b").current.code == "page code"

    @pytest.mark.unit
    def test_interleaved_requests(self, coordinator):
        coordinator.begin("r1", ["a"])
        coordinator.begin("r2", ["b"])
        coordinator.on_chunk("r2", "B1")
        coordinator.on_chunk("r1", "A1")
        coordinator.on_chunk("r2", "B2")
        assert coordinator.buffer("a") == "A1"
        assert coordinator.buffer("b") == "B1B2"

    @pytest.mark.unit
    def test_forget(self, coordinator):
        coordinator.begin("r1", ["a"])
        coordinator.forget("a")
        assert coordinator.pending_requests == {}
        assert coordinator.status("a") is GenerationStatus.IDLE
