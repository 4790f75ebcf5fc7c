"""Pages and shared component definitions."""

from .lib import DEFAULT_PAGE_ID, ProjectModel, default_page

__all__ = ["ProjectModel", "DEFAULT_PAGE_ID", "default_page"]
