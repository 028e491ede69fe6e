"""
Core Engine for Neon Grid.

The engine wires the stores to the services and serializes each
player's commands behind a per-player lock.
"""

from __future__ import annotations

from src.engine.game import GameEngine

__all__ = ["GameEngine"]
