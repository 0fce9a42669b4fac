"""
Changefeed Ingestion Module
===========================

Feed retrieval and parsing components.

This module handles:
- Concurrent HTTP fetching of the changelog feeds
- RSS parsing into Entry records
- HTML description cleanup
"""
