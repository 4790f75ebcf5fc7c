"""Message protocol between the editor UI and the host.

Each direction is a closed union discriminated on ``type``. Messages
serialize to camelCase JSON. Generation messages carry a caller-chosen
``id`` so replies can be routed back to the request that caused them.
"""

import json
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import Field, SerializationInfo, TypeAdapter, field_serializer

from lattice.ir import (
    AIConfig,
    Framework,
    GenerateRequest,
    GenerateResponse,
    Language,
    LatticeModel,
    LatticeProject,
    UILibrary,
)

# =============================================================================
# Payloads
# =============================================================================


class DetectedProject(LatticeModel):
    """Framework facts detected in the user's workspace."""

    framework: Framework | None = None
    language: Language | None = None
    ui_library: UILibrary | None = None
    root_path: str | None = None


class WriteFilePayload(LatticeModel):
    path: str
    content: str
    confirm: bool = True


class SelectOutputPathPayload(LatticeModel):
    suggested_name: str


class ChunkPayload(LatticeModel):
    text: str


class MessagePayload(LatticeModel):
    message: str


class PathPayload(LatticeModel):
    path: str


class OptionalPathPayload(LatticeModel):
    path: str | None = None


# =============================================================================
# UI -> Host
# =============================================================================


class ReadyMessage(LatticeModel):
    type: Literal["ready"] = "ready"


class DetectProjectMessage(LatticeModel):
    type: Literal["detectProject"] = "detectProject"


class GenerateMessage(LatticeModel):
    type: Literal["generate"] = "generate"
    id: str
    payload: GenerateRequest


class SaveProjectMessage(LatticeModel):
    type: Literal["saveProject"] = "saveProject"
    payload: LatticeProject


class LoadProjectMessage(LatticeModel):
    type: Literal["loadProject"] = "loadProject"


class WriteFileMessage(LatticeModel):
    type: Literal["writeFile"] = "writeFile"
    payload: WriteFilePayload


class SelectOutputPathMessage(LatticeModel):
    type: Literal["selectOutputPath"] = "selectOutputPath"
    payload: SelectOutputPathPayload


class GetAIConfigMessage(LatticeModel):
    type: Literal["getAIConfig"] = "getAIConfig"


class SetAIConfigMessage(LatticeModel):
    """Settings update from the UI.

    This is the one message that carries a plain API key, on its way to
    the host's secret store.
    """

    type: Literal["setAIConfig"] = "setAIConfig"
    payload: AIConfig

    @field_serializer("payload")
    def _reveal_key(self, payload: AIConfig, info: SerializationInfo) -> dict[str, Any]:
        data = payload.model_dump(
            mode="json", by_alias=info.by_alias, exclude_none=info.exclude_none
        )
        secret = payload.secret()
        if secret:
            data["apiKey" if info.by_alias else "api_key"] = secret
        return data


OutboundMessage = Annotated[
    Union[
        ReadyMessage,
        DetectProjectMessage,
        GenerateMessage,
        SaveProjectMessage,
        LoadProjectMessage,
        WriteFileMessage,
        SelectOutputPathMessage,
        GetAIConfigMessage,
        SetAIConfigMessage,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Host -> UI
# =============================================================================


class InitializedMessage(LatticeModel):
    type: Literal["initialized"] = "initialized"


class ProjectDetectedMessage(LatticeModel):
    type: Literal["projectDetected"] = "projectDetected"
    payload: DetectedProject


class ProjectLoadedMessage(LatticeModel):
    type: Literal["projectLoaded"] = "projectLoaded"
    payload: LatticeProject | None = None


class GenerateChunkMessage(LatticeModel):
    type: Literal["generateChunk"] = "generateChunk"
    id: str
    payload: ChunkPayload


class GenerateCompleteMessage(LatticeModel):
    type: Literal["generateComplete"] = "generateComplete"
    id: str
    payload: GenerateResponse


class GenerateErrorMessage(LatticeModel):
    type: Literal["generateError"] = "generateError"
    id: str
    payload: MessagePayload


class FileSavedMessage(LatticeModel):
    type: Literal["fileSaved"] = "fileSaved"
    payload: PathPayload


class FileWriteCancelledMessage(LatticeModel):
    type: Literal["fileWriteCancelled"] = "fileWriteCancelled"


class PathSelectedMessage(LatticeModel):
    type: Literal["pathSelected"] = "pathSelected"
    payload: OptionalPathPayload = Field(default_factory=OptionalPathPayload)


class AIConfigMessage(LatticeModel):
    """Current settings. Senders must pass ``AIConfig.masked()``."""

    type: Literal["aiConfig"] = "aiConfig"
    payload: AIConfig


class ErrorMessage(LatticeModel):
    type: Literal["error"] = "error"
    payload: MessagePayload


InboundMessage = Annotated[
    Union[
        InitializedMessage,
        ProjectDetectedMessage,
        ProjectLoadedMessage,
        GenerateChunkMessage,
        GenerateCompleteMessage,
        GenerateErrorMessage,
        FileSavedMessage,
        FileWriteCancelledMessage,
        PathSelectedMessage,
        AIConfigMessage,
        ErrorMessage,
    ],
    Field(discriminator="type"),
]

# Outbound messages the host forwards to its workspace collaborator
PASS_THROUGH_TYPES = frozenset(
    {"detectProject", "saveProject", "loadProject", "writeFile", "selectOutputPath"}
)

_OUTBOUND_ADAPTER = TypeAdapter(OutboundMessage)
_INBOUND_ADAPTER = TypeAdapter(InboundMessage)


# =============================================================================
# Codec
# =============================================================================


def message_types(union: Any) -> frozenset[str]:
    """The ``type`` discriminator values of a message union."""
    members = get_args(get_args(union)[0])
    return frozenset(member.model_fields["type"].default for member in members)


OUTBOUND_TYPES = message_types(OutboundMessage)
INBOUND_TYPES = message_types(InboundMessage)


def parse_outbound(data: str | bytes | dict[str, Any]) -> OutboundMessage:
    """Validate a UI -> host message.

    Raises:
        pydantic.ValidationError: If the message is malformed or its type unknown.
    """
    if isinstance(data, (str, bytes)):
        return _OUTBOUND_ADAPTER.validate_json(data)
    return _OUTBOUND_ADAPTER.validate_python(data)


def parse_inbound(data: str | bytes | dict[str, Any]) -> InboundMessage:
    """Validate a host -> UI message.

    Raises:
        pydantic.ValidationError: If the message is malformed or its type unknown.
    """
    if isinstance(data, (str, bytes)):
        return _INBOUND_ADAPTER.validate_json(data)
    return _INBOUND_ADAPTER.validate_python(data)


def dump_message(message: LatticeModel) -> dict[str, Any]:
    """Serialize any protocol message to a camelCase JSON-ready dict."""
    return message.to_json_dict()


def encode_message(message: LatticeModel) -> str:
    """Serialize any protocol message to a JSON string."""
    return json.dumps(dump_message(message))


__all__ = [
    # Payloads
    "DetectedProject",
    "WriteFilePayload",
    "SelectOutputPathPayload",
    "ChunkPayload",
    "MessagePayload",
    "PathPayload",
    "OptionalPathPayload",
    # UI -> Host
    "ReadyMessage",
    "DetectProjectMessage",
    "GenerateMessage",
    "SaveProjectMessage",
    "LoadProjectMessage",
    "WriteFileMessage",
    "SelectOutputPathMessage",
    "GetAIConfigMessage",
    "SetAIConfigMessage",
    "OutboundMessage",
    # Host -> UI
    "InitializedMessage",
    "ProjectDetectedMessage",
    "ProjectLoadedMessage",
    "GenerateChunkMessage",
    "GenerateCompleteMessage",
    "GenerateErrorMessage",
    "FileSavedMessage",
    "FileWriteCancelledMessage",
    "PathSelectedMessage",
    "AIConfigMessage",
    "ErrorMessage",
    "InboundMessage",
    # Codec
    "PASS_THROUGH_TYPES",
    "OUTBOUND_TYPES",
    "INBOUND_TYPES",
    "message_types",
    "parse_outbound",
    "parse_inbound",
    "dump_message",
    "encode_message",
]
