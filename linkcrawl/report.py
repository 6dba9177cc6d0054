"""Read-only crawl report built from the state store."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
import sys
import tempfile
from typing import TextIO

from .constants import JSON_INDENT
from .state import StateStore
from .types import ErrorEntry, JSONDict, LinkStatus, ReportSummary, URI, utc_now_iso


@dataclass(slots=True)
class LinkReport:
    """Errors with referrers, invalid raw links with contexts, and totals."""

    errors: list[ErrorEntry]
    invalid_links: dict[str, list[URI]]
    summary: ReportSummary
    ok: list[tuple[URI, LinkStatus]] = field(default_factory=list)
    checked: int = 0
    generated_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "generated_at": self.generated_at,
            "summary": self.summary.to_json(),
            "checked": self.checked,
            "errors": [entry.to_json() for entry in self.errors],
            "invalid_links": {raw: list(contexts) for raw, contexts in self.invalid_links.items()},
            "ok": [{"uri": uri, "status": status.to_int()} for uri, status in self.ok],
        }


def build_report(state: StateStore, include_all: bool = False) -> LinkReport:
    """Collect report data; `include_all` also lists successful URIs."""

    by_raw: dict[str, set[URI]] = {}
    for entry in state.invalid_entries():
        for raw_link in entry.raw_links:
            by_raw.setdefault(raw_link, set()).add(entry.context)

    return LinkReport(
        errors=state.error_entries(),
        invalid_links={raw: sorted(contexts) for raw, contexts in sorted(by_raw.items())},
        summary=state.summary(),
        ok=state.success_entries() if include_all else [],
        checked=state.num_checked(),
    )


def print_report(report: LinkReport, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout

    for raw_link, contexts in report.invalid_links.items():
        print(f"INVALID url {raw_link!r} - referred by following urls", file=out)
        for context in contexts:
            print(f" + {context}", file=out)

    for entry in report.errors:
        print(f"[{entry.status}] at {entry.uri} (referred by following urls:)", file=out)
        for referrer in entry.referrers:
            print(f" + {referrer}", file=out)

    for uri, _status in report.ok:
        print(f"[OK] at {uri}", file=out)

    summary = report.summary
    print(
        f"Success: {summary.success}, Errors: {summary.errors}, Invalids: {summary.invalid}",
        file=out,
    )
    print(f"Total number of resolved statuses: {report.checked}", file=out)


def save_report(report: LinkReport, path: str | Path) -> None:
    """Write the report as JSON, replacing any previous file atomically."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(report.to_json(), ensure_ascii=False, indent=JSON_INDENT, sort_keys=True) + "\n"

    tmp_fd, tmp_path = tempfile.mkstemp(
        dir=str(out_path.parent),
        prefix=out_path.name + ".",
        suffix=".tmp",
    )
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, out_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass
        raise


__all__ = [
    "LinkReport",
    "build_report",
    "print_report",
    "save_report",
]
