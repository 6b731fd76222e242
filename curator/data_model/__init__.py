"""Shared data model primitives."""

from curator.data_model.base import StrictBaseModel


__all__ = ["StrictBaseModel"]
