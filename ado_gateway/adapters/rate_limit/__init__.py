"""Rate limiting adapters.

This package provides a small abstraction layer so the limiter can start with
an in-memory partition store and later migrate to a shared store without
changing the HTTP layer.
"""
