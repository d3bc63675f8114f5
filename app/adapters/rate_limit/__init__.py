"""Rate limiting adapters.

The service starts with an in-memory, per-process limiter; the abstract
interface leaves room for a shared store without changing the HTTP layer.
"""
