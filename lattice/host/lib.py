"""HostSession: the host side of the editor protocol.

Receives UI -> host messages, runs generations through the AIService as
background tasks and answers with host -> UI messages. Workspace
messages (project detection, persistence, file output) are forwarded to
an injected collaborator such as FileWorkspace.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from lattice.ir import GenerateRequest, LatticeModel
from lattice.llm import AIService, LLMError, describe_error
from lattice.protocol import (
    PASS_THROUGH_TYPES,
    AIConfigMessage,
    ChunkPayload,
    ErrorMessage,
    GenerateChunkMessage,
    GenerateCompleteMessage,
    GenerateErrorMessage,
    GenerateMessage,
    GetAIConfigMessage,
    InboundMessage,
    InitializedMessage,
    MessagePayload,
    OutboundMessage,
    ReadyMessage,
    SetAIConfigMessage,
    parse_outbound,
)

logger = logging.getLogger(__name__)

SendCallback = Callable[[InboundMessage], Awaitable[None] | None]
WorkspaceHandler = Callable[[OutboundMessage], Awaitable[InboundMessage | None]]


class HostSession:
    """Dispatches UI messages to the AI service and the workspace.

    Every outbound message type has exactly one handler. Generations run
    as background tasks so several requests can stream concurrently;
    ``drain()`` waits for them.

    Example:
        >>> session = HostSession(AIService(), send=queue.put)
        >>> await session.receive('{"type": "ready"}')
        >>> await session.receive(generate_json)
        >>> await session.drain()
    """

    def __init__(
        self,
        service: AIService,
        send: SendCallback,
        *,
        workspace: WorkspaceHandler | None = None,
    ):
        """Initialize the session.

        Args:
            service: AI service used for settings and generation.
            send: Callback (sync or async) delivering host -> UI messages.
            workspace: Optional handler for pass-through workspace messages.
        """
        self._service = service
        self._send_callback = send
        self._workspace = workspace
        self._tasks: set[asyncio.Task] = set()

        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "ready": self._on_ready,
            "generate": self._on_generate,
            "getAIConfig": self._on_get_ai_config,
            "setAIConfig": self._on_set_ai_config,
        }
        for message_type in PASS_THROUGH_TYPES:
            self._handlers[message_type] = self._on_pass_through

    @property
    def handled_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    @property
    def pending(self) -> int:
        """Number of generations still running."""
        return len(self._tasks)

    async def receive(self, raw: str | bytes | dict[str, Any]) -> None:
        """Parse and dispatch one raw message. Malformed input yields an error message."""
        try:
            message = parse_outbound(raw)
        except ValidationError as e:
            logger.warning(f"Rejected malformed message: {e.error_count()} validation error(s)")
            await self._error(f"Invalid message: {e.errors()[0]['msg']}")
            return
        await self.dispatch(message)

    async def dispatch(self, message: OutboundMessage) -> None:
        await self._handlers[message.type](message)

    async def drain(self) -> None:
        """Wait for every in-flight generation to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # =========================================================================
    # Handlers
    # =========================================================================

    async def _on_ready(self, message: ReadyMessage) -> None:
        await self._send(InitializedMessage())

    async def _on_generate(self, message: GenerateMessage) -> None:
        task = asyncio.create_task(self._run_generation(message.id, message.payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _on_get_ai_config(self, message: GetAIConfigMessage) -> None:
        await self._send(AIConfigMessage(payload=self._service.get_config().masked()))

    async def _on_set_ai_config(self, message: SetAIConfigMessage) -> None:
        try:
            self._service.set_config(message.payload)
        except LLMError as e:
            await self._error(describe_error(e))
            return
        await self._send(AIConfigMessage(payload=self._service.get_config().masked()))

    async def _on_pass_through(self, message: OutboundMessage) -> None:
        if self._workspace is None:
            await self._error(f"No workspace available to handle {message.type}")
            return
        try:
            reply = await self._workspace(message)
        except (OSError, ValueError) as e:
            logger.warning(f"Workspace failed on {message.type}: {e}")
            await self._error(f"{message.type} failed: {e}")
            return
        if reply is not None:
            await self._send(reply)

    # =========================================================================
    # Generation
    # =========================================================================

    async def _run_generation(self, request_id: str, request: GenerateRequest) -> None:
        async def on_chunk(text: str) -> None:
            await self._send(GenerateChunkMessage(id=request_id, payload=ChunkPayload(text=text)))

        logger.info(f"Generation {request_id} started")
        try:
            response = await self._service.generate(request, on_chunk)
        except LLMError as e:
            logger.warning(f"Generation {request_id} failed: {describe_error(e)}")
            await self._generate_error(request_id, e)
            return
        except Exception as e:
            logger.exception(f"Generation {request_id} crashed")
            await self._generate_error(request_id, e)
            return

        logger.info(f"Generation {request_id} complete ({len(response.code)} chars)")
        await self._send(GenerateCompleteMessage(id=request_id, payload=response))

    async def _generate_error(self, request_id: str, error: Exception) -> None:
        await self._send(
            GenerateErrorMessage(
                id=request_id, payload=MessagePayload(message=describe_error(error))
            )
        )

    # =========================================================================
    # Sending
    # =========================================================================

    async def _send(self, message: LatticeModel) -> None:
        result = self._send_callback(message)
        if inspect.isawaitable(result):
            await result

    async def _error(self, text: str) -> None:
        await self._send(ErrorMessage(payload=MessagePayload(message=text)))


__all__ = ["HostSession", "SendCallback", "WorkspaceHandler"]
