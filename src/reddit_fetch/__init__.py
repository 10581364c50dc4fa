"""reddit-fetch: download new subreddit images, skipping what you already deleted."""

__version__ = "0.1.0"
