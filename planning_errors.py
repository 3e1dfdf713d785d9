"""Errors raised while turning a network description into a plan.

Both derive from ``ValueError`` so callers that already guard configuration
parsing with ``except ValueError`` keep working.
"""


class ConfigurationError(ValueError):
    """The network description is structurally invalid."""


class InvalidCidrError(ValueError):
    """A CIDR string could not be split into ``base/prefix``."""
