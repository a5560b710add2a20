"""External events ingestion for EventHub.

Crawls the visit.varna.bg event listings, optionally pulls events from the
AllEvents API, merges both into one canonical event list and keeps it in a
file-backed JSON cache with a 24-hour refresh interval.
"""

__version__ = "0.1.0"
