"""Shared building blocks used across features."""

from orderlens.shared.models import TimestampMixin

__all__ = ["TimestampMixin"]
