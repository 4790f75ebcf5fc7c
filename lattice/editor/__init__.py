"""UI-side editor: composite operations, generation requests and notifications.

Main components:
- Editor: Composes the box tree, project model, context and generation state
- NotificationCenter: Capped list of user-facing notifications

Example:
    >>> from lattice.editor import Editor
    >>> editor = Editor(send=outbox.append)
    >>> box_id = editor.add_box("page_home")
    >>> editor.generate_box(box_id)
"""

from .lib import Editor, LastPrompt, SendCallback, project_slug
from .notifications import (
    MAX_NOTIFICATIONS,
    Notification,
    NotificationCenter,
    NotificationLevel,
)

__all__ = [
    "Editor",
    "LastPrompt",
    "SendCallback",
    "project_slug",
    "MAX_NOTIFICATIONS",
    "Notification",
    "NotificationCenter",
    "NotificationLevel",
]
