"""Configuration for the query runner."""

from .settings import (
    CollectionRef,
    ConnectionSettings,
    QueryParameters,
    RunnerConfig,
    Settings,
    get_settings,
)

__all__ = [
    "CollectionRef",
    "ConnectionSettings",
    "QueryParameters",
    "RunnerConfig",
    "Settings",
    "get_settings",
]
