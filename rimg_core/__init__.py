"""Core models and helpers for the registry image resource."""
