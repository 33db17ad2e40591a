"""KoAI: a terminal assistant backed by a hosted completion service."""

__version__ = "0.1.0"
