"""Dealership Core Module.

Shared infrastructure used by the inventory section:
- Repository base class over the connection pool
- Domain exceptions
- Logging and API helpers
"""
