"""
TubeFeed - follow video channels and read their recent uploads as one feed.

The package has two halves:
- gateway: an edge service fronting the upstream provider
- client: fan-out aggregation, caching and local state
"""

__version__ = "1.0.0"
