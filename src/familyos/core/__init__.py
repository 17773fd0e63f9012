"""Core infrastructure: configuration, logging, caching, persistence and errors."""
