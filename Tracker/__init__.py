"""Life-events insights engine: statistics and pattern discovery over tracked daily events."""

__version__ = "0.1.0"
