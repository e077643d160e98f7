"""
Kernel exception types.
"""


class TechDrawError(Exception):
    """Base class for kernel errors."""


class UnsupportedEntityType(TechDrawError, ValueError):
    """Raised when an entity carries a type tag the kernel does not know."""

    def __init__(self, tag):
        self.tag = tag
        super().__init__(f"Unsupported entity type: {tag!r}")


class InvalidEntityError(TechDrawError, ValueError):
    """Raised when an entity violates a geometric constraint (e.g. radius <= 0)."""
