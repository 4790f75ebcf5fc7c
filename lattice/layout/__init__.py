"""Hierarchical box layout model."""

from .lib import BoxTree

__all__ = ["BoxTree"]
