"""Generation coordinator: per-target streaming state and version history.

Each target (a box id, or a page id for an empty page) moves through
idle -> generating -> complete | failed. Outbound generation requests
carry a caller-chosen request id. The coordinator maps request ids back
to their targets so chunk, completion and error messages, which carry
only the request id, reach the right targets.

A request may map to several targets (whole-page generation). Its
chunks, completion and failure are broadcast to every mapped target,
each of which records its own version of the shared result.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from lattice.ir import GenerationResult, GenerationVersion

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """Lifecycle state of a generation target."""

    IDLE = "idle"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PendingRequest:
    """An in-flight request and the context its versions are stamped with.

    Attributes:
        request_id: Caller-generated id carried by every reply message.
        targets: Targets still listening to this request.
        prompt: User prompt that was sent.
        provider: Provider label recorded on resulting versions.
        model: Model label recorded on resulting versions.
    """

    request_id: str
    targets: list[str] = field(default_factory=list)
    prompt: str = ""
    provider: str = ""
    model: str = ""


class GenerationCoordinator:
    """Tracks streaming buffers, version history and request routing.

    Example:
        >>> coordinator = GenerationCoordinator()
        >>> _ = coordinator.begin("req-1", ["box-1"], prompt="# Component: Hero")
        >>> coordinator.on_chunk("req-1", "export ")
        ['box-1']
        >>> versions = coordinator.on_complete("req-1", "export function Hero() {}")
        >>> coordinator.get_result("box-1").current.code
        'export function Hero() {}'
    """

    def __init__(self, results: dict[str, GenerationResult] | None = None):
        self._results: dict[str, GenerationResult] = dict(results or {})
        self._status: dict[str, GenerationStatus] = {}
        self._buffers: dict[str, str] = {}
        self._requests: dict[str, PendingRequest] = {}

    # =========================================================================
    # Per-target State Machine
    # =========================================================================

    def start(self, target_id: str) -> None:
        """Mark a target as generating and clear its buffer."""
        self._status[target_id] = GenerationStatus.GENERATING
        self._buffers[target_id] = ""

    def append_chunk(self, target_id: str, text: str) -> bool:
        """Append streamed text. Ignored unless the target is generating."""
        if not self.is_generating(target_id):
            return False
        self._buffers[target_id] = self._buffers.get(target_id, "") + text
        return True

    def complete(
        self,
        target_id: str,
        code: str,
        prompt: str,
        provider: str,
        model: str,
    ) -> GenerationVersion:
        """Record a new current version, pushing the old one onto history."""
        version = GenerationVersion.create(code, prompt, provider, model)
        existing = self._results.get(target_id)
        if existing is None:
            self._results[target_id] = GenerationResult(
                target_id=target_id, current=version
            )
        else:
            existing.history.insert(0, existing.current)
            existing.current = version

        self._status[target_id] = GenerationStatus.COMPLETE
        self._buffers[target_id] = ""
        return version

    def fail(self, target_id: str) -> None:
        """Abandon a generation without creating a version."""
        self._status[target_id] = GenerationStatus.FAILED
        self._buffers[target_id] = ""

    def revert(self, target_id: str, version_id: str) -> bool:
        """Swap a historical version into current.

        The previous current version takes the history slot the restored
        version vacated, so revert only ever reorders versions.

        Returns:
            True when the version was found and restored.
        """
        result = self._results.get(target_id)
        if result is None:
            return False

        for index, version in enumerate(result.history):
            if version.id == version_id:
                result.history[index] = result.current
                result.current = version
                return True
        return False

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def results(self) -> dict[str, GenerationResult]:
        return self._results

    def get_result(self, target_id: str) -> GenerationResult | None:
        return self._results.get(target_id)

    def status(self, target_id: str) -> GenerationStatus:
        return self._status.get(target_id, GenerationStatus.IDLE)

    def is_generating(self, target_id: str) -> bool:
        return self.status(target_id) is GenerationStatus.GENERATING

    def buffer(self, target_id: str) -> str:
        """Text streamed so far for a target (empty when none)."""
        return self._buffers.get(target_id, "")

    def forget(self, target_id: str) -> None:
        """Drop all state for a target, e.g. after its box is deleted."""
        self._results.pop(target_id, None)
        self._status.pop(target_id, None)
        self._buffers.pop(target_id, None)
        for request in list(self._requests.values()):
            self._detach(request, target_id)

    def reset(self) -> None:
        self._results.clear()
        self._status.clear()
        self._buffers.clear()
        self._requests.clear()

    # =========================================================================
    # Request Routing
    # =========================================================================

    @property
    def pending_requests(self) -> dict[str, PendingRequest]:
        return self._requests

    def begin(
        self,
        request_id: str,
        targets: Iterable[str],
        *,
        prompt: str = "",
        provider: str = "",
        model: str = "",
    ) -> PendingRequest:
        """Start every target and map them to ``request_id``.

        A target that was still listening to an older request is detached
        from it first, so late replies to the superseded request are
        discarded instead of overwriting the new generation.
        """
        target_list = list(dict.fromkeys(targets))
        for target_id in target_list:
            for other in list(self._requests.values()):
                if other.request_id != request_id:
                    self._detach(other, target_id)
            self.start(target_id)

        request = PendingRequest(
            request_id=request_id,
            targets=target_list,
            prompt=prompt,
            provider=provider,
            model=model,
        )
        self._requests[request_id] = request
        logger.debug(f"Request {request_id} -> {len(target_list)} target(s)")
        return request

    def targets_for(self, request_id: str) -> list[str]:
        request = self._requests.get(request_id)
        return list(request.targets) if request else []

    def on_chunk(self, request_id: str, text: str) -> list[str]:
        """Route a streamed chunk to every target of the request.

        Returns:
            Targets that received the chunk (empty for unknown requests).
        """
        request = self._requests.get(request_id)
        if request is None:
            logger.debug(f"Discarding chunk for unknown request {request_id}")
            return []
        return [t for t in request.targets if self.append_chunk(t, text)]

    def on_complete(self, request_id: str, code: str) -> list[GenerationVersion]:
        """Complete every target of the request and unmap it.

        Returns:
            One new version per target (empty for unknown requests).
        """
        request = self._requests.pop(request_id, None)
        if request is None:
            logger.debug(f"Discarding completion for unknown request {request_id}")
            return []
        return [
            self.complete(t, code, request.prompt, request.provider, request.model)
            for t in request.targets
        ]

    def on_error(self, request_id: str) -> list[str]:
        """Fail every target of the request and unmap it.

        Returns:
            Targets that were failed (empty for unknown requests).
        """
        request = self._requests.pop(request_id, None)
        if request is None:
            logger.debug(f"Discarding error for unknown request {request_id}")
            return []
        for target_id in request.targets:
            self.fail(target_id)
        return list(request.targets)

    def _detach(self, request: PendingRequest, target_id: str) -> None:
        if target_id not in request.targets:
            return
        request.targets.remove(target_id)
        logger.debug(f"Target {target_id} detached from request {request.request_id}")
        if not request.targets:
            del self._requests[request.request_id]


__all__ = ["GenerationCoordinator", "GenerationStatus", "PendingRequest"]
