"""Declarative exception classes: messages from fields, sources, transparent wrapping and conversions."""

__version__ = "0.1.0"

__all__ = ["derive", "fmt", "model", "valid"]