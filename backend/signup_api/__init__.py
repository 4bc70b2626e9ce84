"""Event signup backend with scheduled registration windows."""

__version__ = "1.0.0"
