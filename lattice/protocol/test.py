"""Tests for the message protocol."""

import json

import pytest
from pydantic import ValidationError

from lattice.ir import AIConfig, GenerateRequest, GenerateResponse, Usage

from .lib import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    PASS_THROUGH_TYPES,
    AIConfigMessage,
    GenerateChunkMessage,
    GenerateCompleteMessage,
    GenerateMessage,
    PathSelectedMessage,
    ProjectLoadedMessage,
    SetAIConfigMessage,
    WriteFileMessage,
    dump_message,
    encode_message,
    parse_inbound,
    parse_outbound,
)


class TestUnions:
    """Tests for the discriminator sets."""

    @pytest.mark.unit
    def test_outbound_types(self):
        assert OUTBOUND_TYPES == {
            "ready",
            "detectProject",
            "generate",
            "saveProject",
            "loadProject",
            "writeFile",
            "selectOutputPath",
            "getAIConfig",
            "setAIConfig",
        }

    @pytest.mark.unit
    def test_inbound_types(self):
        assert INBOUND_TYPES == {
            "initialized",
            "projectDetected",
            "projectLoaded",
            "generateChunk",
            "generateComplete",
            "generateError",
            "fileSaved",
            "fileWriteCancelled",
            "pathSelected",
            "aiConfig",
            "error",
        }

    @pytest.mark.unit
    def test_pass_through_subset(self):
        assert PASS_THROUGH_TYPES < OUTBOUND_TYPES


class TestParsing:
    """Tests for parse_outbound / parse_inbound."""

    @pytest.mark.unit
    def test_generate_from_camel_case_json(self):
        raw = json.dumps(
            {
                "type": "generate",
                "id": "req-1",
                "payload": {
                    "prompt": "Build a hero",
                    "systemPrompt": "sys",
                    "model": "gpt-4o",
                    "maxTokens": 100,
                },
            }
        )
        message = parse_outbound(raw)
        assert isinstance(message, GenerateMessage)
        assert message.id == "req-1"
        assert message.payload.system_prompt == "sys"
        assert message.payload.max_tokens == 100
        assert message.payload.stream is None

    @pytest.mark.unit
    def test_write_file(self):
        message = parse_outbound(
            {"type": "writeFile", "payload": {"path": "src/A.tsx", "content": "x", "confirm": False}}
        )
        assert isinstance(message, WriteFileMessage)
        assert message.payload.confirm is False

    @pytest.mark.unit
    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            parse_outbound({"type": "launchMissiles"})

    @pytest.mark.unit
    def test_missing_fields_rejected(self):
        with pytest.raises(ValidationError):
            parse_outbound({"type": "generate", "payload": {"prompt": "p"}})
        with pytest.raises(ValidationError):
            parse_inbound({"type": "generateChunk", "id": "r"})

    @pytest.mark.unit
    def test_inbound_directions_do_not_mix(self):
        with pytest.raises(ValidationError):
            parse_inbound({"type": "ready"})
        with pytest.raises(ValidationError):
            parse_outbound({"type": "initialized"})

    @pytest.mark.unit
    def test_path_selected_defaults(self):
        message = parse_inbound({"type": "pathSelected", "payload": {"path": None}})
        assert isinstance(message, PathSelectedMessage)
        assert message.payload.path is None


class TestSerialization:
    """Tests for dump_message / encode_message."""

    @pytest.mark.unit
    def test_chunk_shape(self):
        message = GenerateChunkMessage(id="r1", payload={"text": "abc"})
        assert dump_message(message) == {
            "type": "generateChunk",
            "id": "r1",
            "payload": {"text": "abc"},
        }

    @pytest.mark.unit
    def test_complete_with_usage(self):
        message = GenerateCompleteMessage(
            id="r1",
            payload=GenerateResponse(code="x", usage=Usage(prompt_tokens=1, completion_tokens=2)),
        )
        assert dump_message(message)["payload"] == {
            "code": "x",
            "usage": {"promptTokens": 1, "completionTokens": 2},
        }

    @pytest.mark.unit
    def test_complete_without_usage(self):
        message = GenerateCompleteMessage(id="r1", payload=GenerateResponse(code="x"))
        assert dump_message(message)["payload"] == {"code": "x"}
        assert parse_inbound(encode_message(message)) == message

    @pytest.mark.unit
    def test_generate_request_roundtrip(self):
        message = GenerateMessage(
            id="r1", payload=GenerateRequest(prompt="p", system_prompt="s", stream=False)
        )
        data = dump_message(message)
        assert data["payload"]["systemPrompt"] == "s"
        assert parse_outbound(data) == message

    @pytest.mark.unit
    def test_project_loaded_without_project(self):
        data = dump_message(ProjectLoadedMessage())
        assert data == {"type": "projectLoaded"}
        assert parse_inbound(data).payload is None


class TestSecrets:
    """Tests that API keys only travel where they must."""

    @pytest.mark.unit
    def test_ai_config_message_never_carries_key(self):
        config = AIConfig(provider="openai", api_key="sk-supersecret99")
        for payload in (config, config.masked()):
            encoded = encode_message(AIConfigMessage(payload=payload))
            assert "sk-supersecret99" not in encoded

    @pytest.mark.unit
    def test_masked_config_message(self):
        config = AIConfig(provider="openai", api_key="sk-supersecret99").masked()
        data = dump_message(AIConfigMessage(payload=config))
        assert "apiKey" not in data["payload"]
        assert data["payload"]["hasApiKey"] is True

    @pytest.mark.unit
    def test_set_config_carries_key_to_host(self):
        message = SetAIConfigMessage(payload=AIConfig(provider="gemini", api_key="AIza-key"))
        data = dump_message(message)
        assert data["payload"]["apiKey"] == "AIza-key"
        parsed = parse_outbound(data)
        assert parsed.payload.secret() == "AIza-key"

    @pytest.mark.unit
    def test_set_config_without_key(self):
        data = dump_message(SetAIConfigMessage(payload=AIConfig(provider="gemini")))
        assert "apiKey" not in data["payload"]
        assert "SecretStr" not in repr(data)
