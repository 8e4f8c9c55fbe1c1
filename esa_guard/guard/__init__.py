"""Validation, rendering and write orchestration for guarded posts."""
