"""Backup pipeline: exclusion filter, archive builder, orchestrator and scheduler."""
