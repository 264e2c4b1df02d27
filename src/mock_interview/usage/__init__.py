"""Usage metering: cost model, session buffer and usage log storage."""

from mock_interview.usage.buffer import (
    InMemoryUsageBuffer,
    SessionUsageBuffer,
    SqliteUsageBuffer,
    create_buffer,
)
from mock_interview.usage.models import UsageLog, UsageRecord, UsageStats, UsageTotals

__all__ = [
    "InMemoryUsageBuffer",
    "SessionUsageBuffer",
    "SqliteUsageBuffer",
    "UsageLog",
    "UsageRecord",
    "UsageStats",
    "UsageTotals",
    "create_buffer",
]
