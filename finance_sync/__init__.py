"""
Finance Sync - Client-side synchronization layer

Keeps a personal finance tracker's in-memory caches consistent with the
remote API across two generations of endpoint conventions.

DESIGN PRINCIPLES:
1. Validate first, touch the network second
2. One canonical error per failed call
3. The server is the source of truth, the cache is a mirror
4. Every resource is driven by one descriptor table
"""

__version__ = "1.0.0"
__author__ = "Personal Finance Team"
