"""Rayhar dashboard cache.

Browser-style two-tier caching for the Rayhar travel/umrah admin dashboard:
a durable store shared across sessions, an ephemeral store bound to one
login session, pattern invalidation, a janitor sweep, cache-aside reads and
a dashboard cache warmer.
"""

__version__ = "0.1.0"
