"""Edge IP and domain GeoIP enrichment."""

__version__ = "1.0.0"
