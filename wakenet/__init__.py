"""
WakeNet Backend

A FastAPI service that polls external sources, deduplicates and scores
their events, and relays them to subscribers via signed webhooks or a
pull queue.
"""

__version__ = "1.0.0"
