"""Tagged-union message protocol between the editor UI and the host."""

from .lib import (
    INBOUND_TYPES,
    OUTBOUND_TYPES,
    PASS_THROUGH_TYPES,
    AIConfigMessage,
    ChunkPayload,
    DetectedProject,
    DetectProjectMessage,
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
    MessagePayload,
    OptionalPathPayload,
    OutboundMessage,
    PathPayload,
    PathSelectedMessage,
    ProjectDetectedMessage,
    ProjectLoadedMessage,
    ReadyMessage,
    SaveProjectMessage,
    SelectOutputPathMessage,
    SelectOutputPathPayload,
    SetAIConfigMessage,
    WriteFileMessage,
    WriteFilePayload,
    dump_message,
    encode_message,
    message_types,
    parse_inbound,
    parse_outbound,
)

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
