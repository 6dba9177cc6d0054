"""Link checker package: config, state, fetcher, and the crawl scheduler."""

from .backends import InMemoryBackend, StateBackend, create_backend
from .config import RunConfig, host_from_url, load_config, normalize_seed, save_config
from .extractor import Extractor, HtmlExtractor
from .fetcher import ClientPool, Fetcher, create_session
from .orchestrator import Orchestrator
from .policy import ExtractionPolicy, FollowPolicy
from .report import LinkReport, build_report, print_report, save_report
from .state import StateStore
from .stats import ProgressMonitor, StatsCollector
from .types import (
    BootstrapMode,
    CrawlStats,
    ErrorEntry,
    FetchResult,
    InvalidEntry,
    InvalidLink,
    LinkStatus,
    ReportSummary,
    ResolveResult,
    StatusKind,
    utc_now_iso,
)
from .url import InvalidLinkError, URIResolver

__all__ = [
    "BootstrapMode",
    "ClientPool",
    "CrawlStats",
    "ErrorEntry",
    "ExtractionPolicy",
    "Extractor",
    "FetchResult",
    "Fetcher",
    "FollowPolicy",
    "HtmlExtractor",
    "InMemoryBackend",
    "InvalidEntry",
    "InvalidLink",
    "InvalidLinkError",
    "LinkReport",
    "LinkStatus",
    "Orchestrator",
    "ProgressMonitor",
    "ReportSummary",
    "ResolveResult",
    "RunConfig",
    "StateBackend",
    "StateStore",
    "StatsCollector",
    "StatusKind",
    "URIResolver",
    "build_report",
    "create_backend",
    "create_session",
    "host_from_url",
    "load_config",
    "normalize_seed",
    "print_report",
    "save_config",
    "save_report",
    "utc_now_iso",
]
