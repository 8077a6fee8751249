"""
Family Budget - Source Package

A Python client for the family budget REST backend. The backend owns
every business rule; this package keeps a local view of its data in
order and in sync after each request.

DESIGN PRINCIPLES:
1. The server is the source of truth
2. Local state changes only through named synchronizer operations
3. A failed request never leaves a partial update behind
4. Every user action is logged with a correlation ID
5. The remote service is swappable (real HTTP or in-memory fake)
"""

__version__ = "1.0.0"
__author__ = "Family Budget Team"
