"""Immutable follow/extraction policies built once from run configuration."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Iterable
from urllib.parse import urlsplit

from .types import URI


LOGGER = logging.getLogger(__name__)


def _host_of(uri: URI) -> str | None:
    try:
        return urlsplit(uri).hostname
    except ValueError:
        return None


def _compile_patterns(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ValueError(f"Invalid pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


@dataclass(frozen=True, slots=True)
class FollowPolicy:
    """Decide whether a discovered URI is added to the frontier.

    Rules, first match wins:
    - include patterns set: follow iff the candidate's path fully matches one;
    - the full candidate URI fully matches an ignore pattern: do not follow;
    - the candidate host is local: follow;
    - `follow_from_local`: follow iff the context host is local.
    """

    local_hosts: frozenset[str]
    include: tuple[re.Pattern[str], ...] = ()
    ignore: tuple[re.Pattern[str], ...] = ()
    follow_from_local: bool = False

    @classmethod
    def build(
        cls,
        *,
        local_hosts: Iterable[str],
        include_patterns: Iterable[str] = (),
        ignore_patterns: Iterable[str] = (),
        follow_from_local: bool = False,
    ) -> "FollowPolicy":
        return cls(
            local_hosts=frozenset(host.lower() for host in local_hosts if host),
            include=_compile_patterns(include_patterns),
            ignore=_compile_patterns(ignore_patterns),
            follow_from_local=follow_from_local,
        )

    def should_follow(self, context: URI, candidate: URI) -> bool:
        if self.include:
            path = urlsplit(candidate).path
            for pattern in self.include:
                if pattern.fullmatch(path):
                    LOGGER.debug("URL %s matches pattern %s; including", candidate, pattern.pattern)
                    return True
            return False

        for pattern in self.ignore:
            if pattern.fullmatch(candidate):
                LOGGER.debug("URL %s matches pattern %s; ignoring", candidate, pattern.pattern)
                return False

        if _host_of(candidate) in self.local_hosts:
            return True

        if self.follow_from_local:
            return _host_of(context) in self.local_hosts

        return False


@dataclass(frozen=True, slots=True)
class ExtractionPolicy:
    """Decide whether links are extracted from a fetched page at all."""

    local_hosts: frozenset[str]
    no_follow: bool = False

    @classmethod
    def build(cls, *, local_hosts: Iterable[str], no_follow: bool = False) -> "ExtractionPolicy":
        return cls(
            local_hosts=frozenset(host.lower() for host in local_hosts if host),
            no_follow=no_follow,
        )

    def should_extract(self, context: URI) -> bool:
        return not self.no_follow and _host_of(context) in self.local_hosts


__all__ = [
    "ExtractionPolicy",
    "FollowPolicy",
]
