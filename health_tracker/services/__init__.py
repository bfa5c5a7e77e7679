"""
Core services for the application.

This package contains the record store, the repository facade, and the pure
analytics (classification, aggregation, adherence) applied to its snapshots.
"""

from .adherence import adherence_status, is_taken_today, missed_count, today_record
from .aggregation import summarize_window
from .classification import any_needs_attention, classify
from .dashboard import DashboardSession, build_overview
from .record_store import Collection, RecordStore
from .repository import HealthRepository
from .results import Result

__all__ = [
    "Collection",
    "DashboardSession",
    "HealthRepository",
    "RecordStore",
    "Result",
    "adherence_status",
    "any_needs_attention",
    "build_overview",
    "classify",
    "is_taken_today",
    "missed_count",
    "summarize_window",
    "today_record",
]
