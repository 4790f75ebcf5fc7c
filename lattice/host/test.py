"""Tests for the host session and filesystem workspace."""

import json

import httpx
import pytest

from lattice.ir import AIConfig, LatticeProject, Page
from lattice.llm import AIService
from lattice.protocol import (
    OUTBOUND_TYPES,
    AIConfigMessage,
    ErrorMessage,
    FileSavedMessage,
    FileWriteCancelledMessage,
    GenerateCompleteMessage,
    GenerateErrorMessage,
    PathSelectedMessage,
    ProjectDetectedMessage,
    ProjectLoadedMessage,
    SetAIConfigMessage,
    dump_message,
    encode_message,
)

from .lib import HostSession
from .workspace import FileWorkspace


def _openai_delta(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}}]}


def _generate(request_id: str, **payload) -> dict:
    return {"type": "generate", "id": request_id, "payload": {"prompt": "p", **payload}}


@pytest.fixture
def sent() -> list:
    return []


@pytest.fixture
def host(tmp_path, clean_provider_env, sent):
    """Factory for a HostSession whose service keeps settings under tmp_path."""

    def _build(transport=None, workspace=None, api_key: str | None = "sk-test1234"):
        service = AIService(tmp_path / "config", transport=transport)
        if api_key:
            service.set_config(AIConfig(provider="openai", api_key=api_key))
        return HostSession(service, sent.append, workspace=workspace)

    return _build


# =============================================================================
# Dispatch
# =============================================================================


class TestDispatch:
    """Tests for message routing."""

    @pytest.mark.unit
    def test_every_outbound_type_handled(self, host):
        assert host().handled_types == OUTBOUND_TYPES

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_ready_replies_initialized(self, host, sent):
        await host().receive('{"type": "ready"}')
        assert [m.type for m in sent] == ["initialized"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_send_callback(self, tmp_path, clean_provider_env):
        received = []

        async def send(message):
            received.append(message)

        session = HostSession(AIService(tmp_path), send)
        await session.receive({"type": "ready"})
        assert [m.type for m in received] == ["initialized"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        ["{not json", '{"type": "launchMissiles"}', '{"type": "generate", "id": "r1"}'],
    )
    async def test_malformed_message_reports_error(self, host, sent, raw):
        await host().receive(raw)
        assert len(sent) == 1
        assert isinstance(sent[0], ErrorMessage)
        assert sent[0].payload.message.startswith("Invalid message:")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_pass_through_without_workspace(self, host, sent):
        await host().receive({"type": "detectProject"})
        assert sent[0].payload.message == "No workspace available to handle detectProject"


# =============================================================================
# Generation
# =============================================================================


class TestGeneration:
    """Tests for streamed generation over the protocol."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_streams_chunks_then_completes(self, host, sent, scripted, sse):
        api = scripted(sse([_openai_delta("<div>"), _openai_delta("</div>")]))
        session = host(api.transport)

        await session.receive(_generate("r1"))
        await session.drain()

        assert [m.type for m in sent] == ["generateChunk", "generateChunk", "generateComplete"]
        assert [m.payload.text for m in sent[:2]] == ["<div>", "</div>"]
        assert all(m.id == "r1" for m in sent)
        assert sent[-1].payload.code == "<div></div>"
        assert session.pending == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_streaming_request(self, host, sent, scripted):
        api = scripted(
            httpx.Response(
                200,
                json={
                    "choices": [{"message": {"content": "<p/>"}}],
                    "usage": {"prompt_tokens": 3, "completion_tokens": 4},
                },
            )
        )
        session = host(api.transport)

        await session.receive(_generate("r1", stream=False))
        await session.drain()

        assert [m.type for m in sent] == ["generateComplete"]
        assert dump_message(sent[0])["payload"] == {
            "code": "<p/>",
            "usage": {"promptTokens": 3, "completionTokens": 4},
        }
        assert api.payload()["stream"] is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrent_requests_keep_their_ids(self, host, sent, scripted, sse):
        api = scripted(sse([_openai_delta("a")]), sse([_openai_delta("b")]))
        session = host(api.transport)

        await session.receive(_generate("r1"))
        await session.receive(_generate("r2"))
        await session.drain()

        completes = {m.id: m.payload.code for m in sent if isinstance(m, GenerateCompleteMessage)}
        assert set(completes) == {"r1", "r2"}
        assert sorted(completes.values()) == ["a", "b"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_key_reports_generate_error(self, host, sent, scripted):
        api = scripted()
        session = host(api.transport, api_key=None)

        await session.receive(_generate("r9"))
        await session.drain()

        assert len(sent) == 1
        assert isinstance(sent[0], GenerateErrorMessage)
        assert sent[0].id == "r9"
        assert sent[0].payload.message == (
            "No API key configured for OpenAI. Open Settings and add your OpenAI API key."
        )
        assert api.requests == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rejected_key_reports_generate_error(self, host, sent, scripted):
        api = scripted(httpx.Response(401, json={"error": {"message": "Incorrect API key"}}))
        session = host(api.transport)

        await session.receive(_generate("r1"))
        await session.drain()

        assert isinstance(sent[-1], GenerateErrorMessage)
        assert "authentication error" in sent[-1].payload.message
        assert "sk-test1234" not in encode_message(sent[-1])


# =============================================================================
# Settings
# =============================================================================


class TestSettings:
    """Tests for getAIConfig / setAIConfig."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_config_is_masked(self, host, sent):
        await host().receive({"type": "getAIConfig"})
        assert isinstance(sent[0], AIConfigMessage)
        encoded = encode_message(sent[0])
        assert "sk-test1234" not in encoded
        assert json.loads(encoded)["payload"]["hasApiKey"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_config_stores_and_replies_masked(self, host, sent, tmp_path):
        session = host(api_key=None)
        message = SetAIConfigMessage(
            payload=AIConfig(provider="anthropic", model="claude-3-haiku-20240307", api_key="sk-ant-xyz")
        )

        await session.receive(encode_message(message))

        reply = sent[-1]
        assert isinstance(reply, AIConfigMessage)
        assert reply.payload.provider == "anthropic"
        assert reply.payload.api_key is None
        assert reply.payload.has_api_key
        assert "sk-ant-xyz" not in encode_message(reply)
        assert "sk-ant-xyz" not in (tmp_path / "config" / "ai-config.json").read_text()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_set_config_unknown_provider(self, host, sent):
        await host().receive({"type": "setAIConfig", "payload": {"provider": "mistral"}})
        assert isinstance(sent[-1], ErrorMessage)
        assert sent[-1].payload.message == "Unknown AI provider: mistral"


# =============================================================================
# Workspace
# =============================================================================


class TestFileWorkspace:
    """Tests for pass-through messages handled on disk."""

    @pytest.fixture
    def workspace(self, tmp_path):
        root = tmp_path / "app"
        root.mkdir()
        return FileWorkspace(root)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_detect_next_typescript_tailwind(self, host, sent, workspace):
        (workspace.root / "package.json").write_text(
            json.dumps(
                {
                    "dependencies": {"next": "14.2.0", "react": "18.3.0"},
                    "devDependencies": {"typescript": "5.4.0", "tailwindcss": "3.4.0"},
                }
            )
        )
        await host(workspace=workspace).receive({"type": "detectProject"})

        reply = sent[-1]
        assert isinstance(reply, ProjectDetectedMessage)
        assert reply.payload.framework == "nextjs"
        assert reply.payload.language == "typescript"
        assert reply.payload.ui_library == "tailwind"
        assert reply.payload.root_path == str(workspace.root)

    @pytest.mark.unit
    def test_detect_vue_javascript_shadcn(self, workspace):
        (workspace.root / "package.json").write_text(
            json.dumps({"dependencies": {"vue": "3.4.0", "tailwindcss": "3.4.0"}})
        )
        (workspace.root / "components.json").write_text("{}")
        detected = workspace.detect_project()
        assert detected.framework == "vue"
        assert detected.language == "javascript"
        assert detected.ui_library == "shadcn"

    @pytest.mark.unit
    def test_detect_without_package_json(self, workspace):
        detected = workspace.detect_project()
        assert detected.framework is None
        assert detected.language is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_save_then_load(self, host, sent, workspace):
        project = LatticeProject(pages=[Page(name="Home")])
        session = host(workspace=workspace)

        await session.receive({"type": "saveProject", "payload": dump_message(project)})
        assert sent == []
        assert workspace.project_path.exists()

        await session.receive({"type": "loadProject"})
        reply = sent[-1]
        assert isinstance(reply, ProjectLoadedMessage)
        assert reply.payload == project

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_load_missing_or_corrupt(self, host, sent, workspace):
        session = host(workspace=workspace)
        await session.receive({"type": "loadProject"})
        assert sent[-1].payload is None

        workspace.project_path.parent.mkdir()
        workspace.project_path.write_text('{"pages": "nope"}')
        await session.receive({"type": "loadProject"})
        assert sent[-1].payload is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_file(self, host, sent, workspace):
        session = host(workspace=workspace)
        write = {"type": "writeFile", "payload": {"path": "src/components/Hero.tsx", "content": "v1"}}

        await session.receive(write)
        assert isinstance(sent[-1], FileSavedMessage)
        assert sent[-1].payload.path == "src/components/Hero.tsx"

        # Confirmed writes do not replace an existing file
        await session.receive({**write, "payload": {**write["payload"], "content": "v2"}})
        assert isinstance(sent[-1], FileWriteCancelledMessage)
        assert (workspace.root / "src/components/Hero.tsx").read_text() == "v1"

        await session.receive(
            {**write, "payload": {**write["payload"], "content": "v3", "confirm": False}}
        )
        assert isinstance(sent[-1], FileSavedMessage)
        assert (workspace.root / "src/components/Hero.tsx").read_text() == "v3"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_write_outside_workspace_rejected(self, host, sent, workspace):
        await host(workspace=workspace).receive(
            {"type": "writeFile", "payload": {"path": "../evil.tsx", "content": "x"}}
        )
        assert isinstance(sent[-1], ErrorMessage)
        assert sent[-1].payload.message == (
            "writeFile failed: Path is outside the workspace: ../evil.tsx"
        )
        assert not (workspace.root.parent / "evil.tsx").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_select_output_path(self, host, sent, workspace):
        await host(workspace=workspace).receive(
            {"type": "selectOutputPath", "payload": {"suggestedName": "Hero.tsx"}}
        )
        assert isinstance(sent[-1], PathSelectedMessage)
        assert sent[-1].payload.path == "src/components/Hero.tsx"
