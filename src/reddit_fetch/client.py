"""Reddit client factory for reddit-fetch."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from reddit_fetch import __version__
from reddit_fetch.adapters.reddit_client import RedditClient


def build_client(posts_per_source: int = 10) -> RedditClient:
    """Create a Reddit client from environment variables.

    We read REDDIT_CLIENT_ID/REDDIT_CLIENT_SECRET via python-dotenv to keep
    secrets out of config.json. REDDIT_USER_AGENT is optional.
    """

    load_dotenv()

    client_id = os.getenv("REDDIT_CLIENT_ID")
    client_secret = os.getenv("REDDIT_CLIENT_SECRET")
    user_agent = os.getenv("REDDIT_USER_AGENT") or f"reddit-fetch/{__version__}"

    # Fail fast on missing credentials instead of a 401 on every source.
    if not client_id or not client_secret:
        raise RuntimeError("Missing REDDIT_CLIENT_ID or REDDIT_CLIENT_SECRET in environment")

    logging.getLogger(__name__).info("Initializing Reddit client")

    return RedditClient(
        client_id=client_id,
        client_secret=client_secret,
        user_agent=user_agent,
        posts_per_source=posts_per_source,
    )
