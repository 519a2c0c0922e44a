"""Assessment engine: blueprint validation, timed delivery and scoring."""

__version__ = "0.1.0"

__all__ = ["__version__"]
