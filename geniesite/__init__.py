"""GenieSite — describe a website, get a single-file HTML document back."""

__version__ = "1.0.0"
