"""Validation of analysis records posted by sub-agents."""
