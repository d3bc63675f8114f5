"""Storage adapters.

Only an in-memory backend ships here; the relational backend is provided by
the deployment and plugged in behind ``AbstractStorage``.
"""
