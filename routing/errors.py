# =============================================================================
# routing/errors.py  -  Error Taxonomy
# =============================================================================
#
# Every failure the server can report maps to one of these classes.
# The tool dispatcher catches all of them (and any other exception) at its
# boundary and turns them into an MCP error result.  ConfigurationError is
# the only one that ends the process, and only at startup.
# =============================================================================

from typing import Optional


class RoutePlannerError(Exception):
    """Base class for every error raised by the routing package."""


class ConfigurationError(RoutePlannerError):
    """Missing or placeholder API key, or an unreadable config file."""


class UnknownToolError(RoutePlannerError):
    """A tool call named a tool that is not in the catalog."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class NoRouteFoundError(RoutePlannerError):
    """The provider answered, but with zero routes."""


class ProviderError(RoutePlannerError):
    """Transport, auth, quota or malformed-response failure from the provider.

    `status` carries the provider status string (e.g. "REQUEST_DENIED") or
    the HTTP status code when one is known.
    """

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class InsufficientDataError(RoutePlannerError):
    """Cost estimation was asked for without any route to cost."""


class InvalidRouteError(RoutePlannerError):
    """A route whose numbers cannot be classified (e.g. zero duration)."""
