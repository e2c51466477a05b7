"""Console control surface for a scheduled-task runner service."""

__version__ = "0.1.0"
