"""Anchorman - git activity tracking and work-log generation."""

__version__ = "0.3.0"
