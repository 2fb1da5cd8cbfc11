"""Rate limiting adapters.

A small abstraction layer so the service can run with an in-memory limiter
today and move to a shared store (e.g. Redis) later without changing the
HTTP layer.
"""
