"""Geometry error types."""

from __future__ import annotations


class InvalidGeometry(ValueError):
    """Degenerate input: zero-height sizes, non-finite bounds, unknown rotation."""


class ConstraintViolation(ValueError):
    """Bounds outside their container or below the minimum footprint.

    Drags never raise this; the controller clamps instead. Only strict
    validation reports it.
    """


class RoundTripDrift(ArithmeticError):
    """A normalized value did not survive pixel conversion within tolerance."""
