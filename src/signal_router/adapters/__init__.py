"""Adapters implementing the core ports (storage, config, AI, notifications)."""
