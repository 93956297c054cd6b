"""
Shared utilities: logging, error handling, rate limiting and hashing.
"""
