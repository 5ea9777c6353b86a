"""
Athlete Stats Sync Service

Pulls stats, schedules, live scores, news and market data for the tracked
athletes and writes them to the store.

Key components:
- Adapters: One per external source (API-Football, balldontlie, Google CSE, ESPN, Transfermarkt)
- Parsers: Pattern rules for scraped ESPN markdown and Transfermarkt HTML
- Orchestrator: Cooldown, batch template and one operation per sync-type
"""
