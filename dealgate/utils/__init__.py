# @file: __init__.py
# @description: Utility helpers exposed by dealgate.utils.
"""Utility helpers for service-level modules."""

from .retry import retry_async

__all__ = ["retry_async"]
