"""
Website enrichment scraper.

Crawls business websites, captures raw pages and extracts contact, team,
history and acquisition signals for each business record.
"""

__version__ = "0.1.0"
