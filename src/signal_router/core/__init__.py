"""Core domain package for signal-router.

Core contains ticker extraction, rule matching, dispatch planning and report
aggregation without any HTTP, SQLite or chat-platform code, keeping the
business logic portable.
"""
