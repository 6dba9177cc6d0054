"""Canonicalization of raw href strings against the page they were found on."""

from __future__ import annotations

import logging
import re
from typing import Sequence
from urllib.parse import SplitResult, urljoin, urlsplit

from .constants import ALLOWED_SCHEMES
from .types import InvalidLink, ResolveResult, URI


LOGGER = logging.getLogger(__name__)

# Characters never allowed unescaped in a URI reference.
_ILLEGAL_CHARS_RE = re.compile(r'[\x00-\x20\x7f"<>\\^`{|}]')
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class InvalidLinkError(ValueError):
    """Raised by `URIResolver.resolve_uri` for a link that cannot be canonicalized."""

    def __init__(self, context: URI, linked_url: str, reason: str) -> None:
        super().__init__(f"Invalid link {linked_url!r} on {context}: {reason}")
        self.context = context
        self.linked_url = linked_url
        self.reason = reason

    def to_invalid_link(self) -> InvalidLink:
        return InvalidLink(context=self.context, raw_link=self.linked_url, reason=self.reason)


def _syntax_error(raw: str) -> str | None:
    """Return a reason when `raw` is not a syntactically valid URI reference."""

    match = _ILLEGAL_CHARS_RE.search(raw)
    if match is not None:
        return f"Illegal character {match.group()!r} at index {match.start()}"

    if _BAD_ESCAPE_RE.search(raw):
        return "Malformed escape sequence"

    if raw.count("#") > 1:
        return "Illegal character '#' in fragment"

    if raw.startswith(":"):
        return "Expected scheme name"

    try:
        parsed = urlsplit(raw)
        parsed.port
    except ValueError as exc:
        return str(exc)

    # Brackets are only legal around an IPv6 literal in the authority.
    rest = raw[len(f"{parsed.scheme}:") :] if parsed.scheme else raw
    if parsed.scheme and not rest:
        return "Expected scheme-specific part"
    # An empty authority is only allowed when something follows it.
    if rest == "//":
        return "Expected authority"
    if rest.startswith("//"):
        rest = rest[2 + len(parsed.netloc) :]
    if "[" in rest or "]" in rest:
        return "Illegal character in path"

    return None


def _split(uri: str) -> SplitResult | None:
    try:
        parsed = urlsplit(uri)
        parsed.port
    except ValueError:
        return None
    return parsed


def _has_path(parsed: SplitResult) -> bool:
    # Only opaque URIs (e.g. `mailto:x`) lack a path; an empty path still counts.
    if parsed.scheme and not parsed.netloc and not parsed.path.startswith("/"):
        return False
    return True


def _strip_fragment(uri: str) -> str:
    return uri.partition("#")[0]


class URIResolver:
    """Resolve raw links into followable absolute URIs.

    Outcomes per (context, raw link):
    - a followable http(s) URI with its fragment removed;
    - nothing, for links that are valid but never followed (other schemes,
      opaque URIs);
    - an `InvalidLink` for links that fail URI syntax or have no usable host.

    When resolution leaves host or scheme missing, the URI is rebuilt from
    the context's scheme and authority followed by the raw link verbatim.
    """

    def __init__(self, allowed_schemes: Sequence[str] = ALLOWED_SCHEMES) -> None:
        self.allowed_schemes = frozenset(scheme.lower() for scheme in allowed_schemes)

    def resolve(self, context: URI, raw_link: str) -> ResolveResult:
        """Resolve one raw link; never raises."""

        if not raw_link or raw_link.isspace():
            resolved = context
        else:
            reason = _syntax_error(raw_link)
            if reason is not None:
                LOGGER.debug("Invalid link %r on %s: %s", raw_link, context, reason)
                return ResolveResult.invalid(context, raw_link, reason)
            resolved = urljoin(context, raw_link)
            LOGGER.debug("Link from %s to %r resolved to %s", context, raw_link, resolved)

        resolved = _strip_fragment(resolved)
        parsed = _split(resolved)
        if parsed is None:
            return ResolveResult.invalid(context, raw_link, "Could not extract host")

        if not _has_path(parsed) and not parsed.scheme:
            return ResolveResult.invalid(context, raw_link, f"Ignoring uri without path: {raw_link}")

        if parsed.scheme and parsed.scheme.lower() not in self.allowed_schemes:
            LOGGER.debug("Not following %s: scheme %r", resolved, parsed.scheme)
            return ResolveResult.ignored()

        if not parsed.hostname or not parsed.scheme:
            ctx = urlsplit(context)
            authority = ctx.netloc.rpartition("@")[2]
            resolved = f"{ctx.scheme}://{authority}{raw_link}"
            parsed = _split(resolved)

        if parsed is None or not parsed.hostname:
            return ResolveResult.invalid(context, raw_link, "Could not extract host")

        if not _has_path(parsed):
            LOGGER.debug("Not following non-path url: %s", resolved)
            return ResolveResult.ignored()

        return ResolveResult.followable(resolved)

    def resolve_uri(self, context: URI, raw_link: str) -> URI | None:
        """Strict form of `resolve`: returns the URI or None, raises `InvalidLinkError`."""

        result = self.resolve(context, raw_link)
        if result.error is not None:
            raise InvalidLinkError(result.error.context, result.error.raw_link, result.error.reason)
        return result.uri


__all__ = [
    "InvalidLinkError",
    "URIResolver",
]
