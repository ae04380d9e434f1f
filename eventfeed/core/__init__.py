"""Core infrastructure: configuration, clock, HTTP client, caching."""
