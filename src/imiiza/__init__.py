"""imiiza - visa application intermediary platform backend."""

__version__ = "0.1.0"
