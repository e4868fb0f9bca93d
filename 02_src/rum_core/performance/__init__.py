"""Performance monitoring module."""

from .capture_navigation import (
    capture_navigation,
    create_navigation_timing_spans,
    create_resource_timing_spans,
    create_user_timing_spans,
    get_page_load_marks,
)
from .perf_entry_recorder import (
    PerfEntryRecorder,
    create_long_task_spans,
    on_performance_entry,
)

__all__ = [
    "PerfEntryRecorder",
    "capture_navigation",
    "create_long_task_spans",
    "create_navigation_timing_spans",
    "create_resource_timing_spans",
    "create_user_timing_spans",
    "get_page_load_marks",
    "on_performance_entry",
]
