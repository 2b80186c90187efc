"""
Utility functions module.

Common helpers for timestamp handling and interval parsing shared across
the service.

Time Semantics:
- All stored timestamps are ISO-8601 strings in UTC
- Timestamps supplied by clients are authoritative for analysis records
- Wall-clock time is only used for created/updated bookkeeping and staleness
"""
