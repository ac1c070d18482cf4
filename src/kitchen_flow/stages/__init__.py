# src/kitchen_flow/stages/__init__.py
"""Stages utilitários distribuídos com o Kitchen Flow."""

from .builtin import Noop, SetState

__all__ = ["Noop", "SetState"]
