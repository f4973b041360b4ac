"""
KwachaLite - Source Package

A local-first personal and business finance tracker.

DESIGN PRINCIPLES:
1. The local store is authoritative for the session
2. Every mutation is persisted locally before it is sent anywhere
3. Remote delivery is ordered, sequential and retried until it succeeds
4. Nothing fails silently: missing records and storage faults are reported
5. Remote backend is swappable
"""

__version__ = "1.0.0"
__author__ = "KwachaLite Team"
