"""Configuration, caching, audit and rate limiting."""
