"""Request context handed to hooks that ask for it."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestContext:
    """Framework-neutral view of the request being served.

    Attributes:
        params: Query parameters as a multimap (name -> list of values)
        path_params: Path parameters captured by the router
        headers: Request headers (lower-cased names)
        request: The underlying framework request, if any
    """

    params: dict[str, list[str]] = field(default_factory=dict)
    path_params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    request: Any = None

    def param(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of a query parameter."""
        values = self.params.get(name)
        return values[0] if values else default
