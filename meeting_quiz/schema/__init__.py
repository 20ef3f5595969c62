"""Schemas for quiz payloads and persisted work items."""
