"""Concurrency and URL resolution helpers for crawl-style jobs."""

from lib.crawl.executor import BoundedExecutor, TaskResult
from lib.crawl.resolver import Resolution, ResolverConfig, describe_error, resolve_url

__all__ = [
    "BoundedExecutor",
    "TaskResult",
    "Resolution",
    "ResolverConfig",
    "describe_error",
    "resolve_url",
]
