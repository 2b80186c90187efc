"""SQLite-backed persistence for analysis records."""
