"""
Services module for the stats ingestion pipeline.

This module organizes services into:
- core: Shared adapter base class and circuit breakers
- sync: Source adapters, page parsers and the sync orchestrator
"""
