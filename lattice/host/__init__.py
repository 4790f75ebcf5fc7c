"""Host side of the editor protocol.

Main components:
- HostSession: Dispatches UI messages to the AI service and workspace
- FileWorkspace: Project detection, persistence and file output on disk

Example:
    >>> from lattice.host import FileWorkspace, HostSession
    >>> session = HostSession(AIService(), send, workspace=FileWorkspace("."))
    >>> await session.receive(raw_message)
"""

from .lib import HostSession, SendCallback, WorkspaceHandler
from .workspace import DEFAULT_OUTPUT_DIR, PROJECT_DIR, PROJECT_FILE, FileWorkspace

__all__ = [
    "HostSession",
    "SendCallback",
    "WorkspaceHandler",
    "FileWorkspace",
    "DEFAULT_OUTPUT_DIR",
    "PROJECT_DIR",
    "PROJECT_FILE",
]
