"""Loops integration."""

from .client import LoopsProvider

__all__ = ["LoopsProvider"]
