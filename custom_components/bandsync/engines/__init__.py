"""Engine modules for BandSync integration.

Contains pure computation engines:
- recurrence_engine: Occurrence generation and RRULE export for recurring events
"""

# Use relative imports within package to avoid mypy module resolution issues
from .recurrence_engine import (
    InvalidRecurrenceRule,
    NonRecurring,
    Recurrence,
    RecurrenceEngine,
    RecurrenceRule,
    Recurring,
    generate_occurrences,
    occurrences_in_range,
    recurrence_from_record,
)

__all__ = [
    "InvalidRecurrenceRule",
    "NonRecurring",
    "Recurrence",
    "RecurrenceEngine",
    "RecurrenceRule",
    "Recurring",
    "generate_occurrences",
    "occurrences_in_range",
    "recurrence_from_record",
]
