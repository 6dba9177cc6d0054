"""Typed run configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

import yaml  # type: ignore

from .constants import (
    DEFAULT_BACKEND,
    DEFAULT_DELAY_MS,
    DEFAULT_REDIS_DB,
    DEFAULT_REDIS_HOST,
    DEFAULT_REDIS_PORT,
    DEFAULT_REDIS_PREFIX,
    DEFAULT_THREADS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_BACKENDS,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .policy import ExtractionPolicy, FollowPolicy
from .types import BootstrapMode, JSONDict, URI


def host_from_url(url: str) -> str:
    """Extract the lowercased host from a URL string ("" when absent)."""

    try:
        return (urlsplit(url).hostname or "").strip().lower()
    except ValueError:
        return ""


def normalize_seed(seed: str) -> URI:
    """Canonicalize a start URI: strip whitespace and fragment, empty path -> '/'."""

    raw = seed.strip()
    parsed = urlsplit(raw)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Seed must be an absolute http(s) URL: {seed!r}")
    path = parsed.path or "/"
    return urlunsplit((parsed.scheme, parsed.netloc, path, parsed.query, ""))


def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_float(value: Any, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


@dataclass(slots=True)
class RunConfig:
    """Top-level configuration used by state store, fetcher, and orchestrator."""

    seeds: list[str]

    reset: bool = False
    resume: bool = False
    recheck: bool = False
    no_recheck: bool = False
    recheck_only_errors: bool = False
    follow_from_local: bool = False
    no_follow: bool = False

    threads: int = DEFAULT_THREADS
    delay_ms: int = DEFAULT_DELAY_MS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    include_patterns: list[str] = field(default_factory=list)
    ignore_patterns: list[str] = field(default_factory=list)

    ignore_ssl_errors: bool = False
    user_agent: str = DEFAULT_USER_AGENT

    backend: str = DEFAULT_BACKEND
    redis_host: str = DEFAULT_REDIS_HOST
    redis_port: int = DEFAULT_REDIS_PORT
    redis_db: int = DEFAULT_REDIS_DB
    redis_prefix: str = DEFAULT_REDIS_PREFIX

    report: bool = False
    report_all: bool = False

    def __post_init__(self) -> None:
        self.seeds = [normalize_seed(seed) for seed in self.seeds if seed and seed.strip()]

        chosen = [name for name in ("reset", "resume", "recheck") if getattr(self, name)]
        if len(chosen) > 1:
            raise ValueError(f"Bootstrap flags are mutually exclusive, got: {', '.join(chosen)}")

        if self.threads <= 0:
            raise ValueError("threads must be > 0")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self.backend = self.backend.strip().lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(f"Unsupported backend '{self.backend}'. Supported: {SUPPORTED_BACKENDS}")

    @property
    def local_hosts(self) -> frozenset[str]:
        """Hosts of the seeds; links on these hosts are followed and extracted."""

        return frozenset(host for host in (host_from_url(seed) for seed in self.seeds) if host)

    @property
    def bootstrap_mode(self) -> BootstrapMode:
        if self.reset:
            return BootstrapMode.RESET
        if self.recheck and not self.no_recheck:
            return BootstrapMode.RECHECK
        return BootstrapMode.RESUME

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0

    def follow_policy(self) -> FollowPolicy:
        return FollowPolicy.build(
            local_hosts=self.local_hosts,
            include_patterns=self.include_patterns,
            ignore_patterns=self.ignore_patterns,
            follow_from_local=self.follow_from_local,
        )

    def extraction_policy(self) -> ExtractionPolicy:
        return ExtractionPolicy.build(local_hosts=self.local_hosts, no_follow=self.no_follow)

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "seeds": list(self.seeds),
            "reset": self.reset,
            "resume": self.resume,
            "recheck": self.recheck,
            "no_recheck": self.no_recheck,
            "recheck_only_errors": self.recheck_only_errors,
            "follow_from_local": self.follow_from_local,
            "no_follow": self.no_follow,
            "threads": self.threads,
            "delay_ms": self.delay_ms,
            "timeout_seconds": self.timeout_seconds,
            "include_patterns": list(self.include_patterns),
            "ignore_patterns": list(self.ignore_patterns),
            "ignore_ssl_errors": self.ignore_ssl_errors,
            "user_agent": self.user_agent,
            "backend": self.backend,
            "redis_host": self.redis_host,
            "redis_port": self.redis_port,
            "redis_db": self.redis_db,
            "redis_prefix": self.redis_prefix,
            "report": self.report,
            "report_all": self.report_all,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RunConfig":
        """Build config from a parsed dictionary."""

        flags = {
            name: _as_bool(payload.get(name, False), name)
            for name in (
                "reset",
                "resume",
                "recheck",
                "no_recheck",
                "recheck_only_errors",
                "follow_from_local",
                "no_follow",
                "ignore_ssl_errors",
                "report",
                "report_all",
            )
        }

        return cls(
            seeds=[str(seed) for seed in list(payload.get("seeds") or [])],
            threads=_as_int(payload.get("threads", DEFAULT_THREADS), "threads"),
            delay_ms=_as_int(payload.get("delay_ms", DEFAULT_DELAY_MS), "delay_ms"),
            timeout_seconds=_as_float(
                payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS),
                "timeout_seconds",
            ),
            include_patterns=_as_str_list(payload.get("include_patterns"), "include_patterns"),
            ignore_patterns=_as_str_list(payload.get("ignore_patterns"), "ignore_patterns"),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            backend=str(payload.get("backend", DEFAULT_BACKEND)),
            redis_host=str(payload.get("redis_host", DEFAULT_REDIS_HOST)),
            redis_port=_as_int(payload.get("redis_port", DEFAULT_REDIS_PORT), "redis_port"),
            redis_db=_as_int(payload.get("redis_db", DEFAULT_REDIS_DB), "redis_db"),
            redis_prefix=str(payload.get("redis_prefix", DEFAULT_REDIS_PREFIX)),
            **flags,
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config_payload(path: str | Path) -> dict[str, Any]:
    """Read the raw mapping from a JSON/YAML config file."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")
    return payload


def load_config(path: str | Path) -> RunConfig:
    """Load RunConfig from JSON/YAML path."""

    return RunConfig.from_dict(load_config_payload(path))


def save_config(config: RunConfig, path: str | Path) -> None:
    """Save RunConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "RunConfig",
    "host_from_url",
    "load_config",
    "load_config_payload",
    "normalize_seed",
    "save_config",
]
