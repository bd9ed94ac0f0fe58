"""Utility modules."""

from .method_matching import resolve_payment_method

__all__ = ["resolve_payment_method"]
