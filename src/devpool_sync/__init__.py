"""
Devpool synchronization tool

Mirrors bounty issues from partner repositories into the devpool repository,
keeps their metadata and open/closed state in sync, and maintains reward and
task statistics.
"""

from __future__ import annotations

from .cli import main
from .engine import STATE_CHANGE_RULES, SyncConfig, SyncEngine, SyncReport, select_transition
from .exceptions import ConfigurationError, CrossReferenceError, PriceParseError, RemoteCallError, SyncError
from .labels import get_price, get_price_label, reconcile_labels
from .models import Issue, Label, Project, Statistics
from .statistics import calculate_statistics

# Package version
__version__ = "0.1.0"

__all__ = [
    "STATE_CHANGE_RULES",
    "ConfigurationError",
    "CrossReferenceError",
    "Issue",
    "Label",
    "PriceParseError",
    "Project",
    "RemoteCallError",
    "Statistics",
    "SyncConfig",
    "SyncEngine",
    "SyncError",
    "SyncReport",
    "calculate_statistics",
    "get_price",
    "get_price_label",
    "main",
    "reconcile_labels",
    "select_transition",
]
