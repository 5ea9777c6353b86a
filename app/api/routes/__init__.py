"""
API routes.

- sync: Sync triggers, Transfermarkt push-ingest, sync logs and status
"""
