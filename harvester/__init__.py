"""Portal token harvester: captures a freshly issued access token and publishes it."""

__version__ = "1.0.0"
