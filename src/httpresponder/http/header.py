"""
=============================================================================
HTTP HEADER
=============================================================================

An immutable name/value pair, used for both request and response headers.

=============================================================================
WHY A LIST OF PAIRS AND NOT A DICT?
=============================================================================

Headers are kept exactly as they appeared (requests) or were added
(responses):

    ┌──────────────────────────────────────────────────────────────────┐
    │  [HTTPHeader("Host", "10.0.0.5"),                                │
    │   HTTPHeader("Accept-Encoding", "gzip, deflate"),                │
    │   HTTPHeader("X-Trace", "a"),                                    │
    │   HTTPHeader("X-Trace", "b")]                                    │
    └──────────────────────────────────────────────────────────────────┘

- Order is significant on the wire: handler headers are written back in
  insertion order.
- Repeated names survive untouched.
- Case is preserved; lookups compare names case-insensitively.

=============================================================================
FORMATTING
=============================================================================

Responses render headers with no space after the colon:

    str(HTTPHeader("Connection", "close"))  →  "Connection:close"

=============================================================================
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional


@dataclass(frozen=True)
class HTTPHeader:
    """
    A single header line.

    Construct directly, or fluently:

        header = HTTPHeader.create().with_name("Content-Encoding").with_value("gzip")

    Each ``with_*`` call returns a new header; instances never change.
    """

    name: str = ""
    value: str = ""

    @classmethod
    def create(cls) -> "HTTPHeader":
        """Start a fluent build with an empty name and value."""
        return cls()

    def with_name(self, name: str) -> "HTTPHeader":
        """Return a copy carrying ``name``."""
        return replace(self, name=name)

    def with_value(self, value: str) -> "HTTPHeader":
        """Return a copy carrying ``value``."""
        return replace(self, value=value)

    def matches(self, name: str) -> bool:
        """Case-insensitive name comparison."""
        return self.name.lower() == name.lower()

    def __str__(self) -> str:
        return f"{self.name}:{self.value}"


def find_header(headers: Iterable[HTTPHeader], name: str) -> Optional[HTTPHeader]:
    """
    Return the first header called ``name`` (any case), or None.

    Args:
        headers: Headers in wire order.
        name: Header name to look for.
    """
    for header in headers:
        if header.matches(name):
            return header
    return None
