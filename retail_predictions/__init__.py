"""Request product predictions from the Google Cloud Retail API."""

__version__ = "0.1.0"
