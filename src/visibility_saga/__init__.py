"""Visibility Saga.

Tracks page visibility with a small typed saga runtime:
- a closed event model with pattern-based narrowing
- channels over external push sources
- a cooperative scheduler with take / put / take_latest / throttle effects
"""

__version__ = "0.1.0"

from visibility_saga.config import BridgeSettings

__all__ = ["__version__", "BridgeSettings"]
