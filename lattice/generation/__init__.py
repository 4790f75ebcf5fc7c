"""Generation state, request routing and version history."""

from .lib import GenerationCoordinator, GenerationStatus, PendingRequest

__all__ = ["GenerationCoordinator", "GenerationStatus", "PendingRequest"]
