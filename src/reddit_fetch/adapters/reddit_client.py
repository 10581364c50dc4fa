"""Reddit API adapter.

Implements the core ContentClientPort over the Reddit OAuth API with an async
httpx client. Every network, status or payload failure is raised as
TransientFetchError so the orchestrator treats it as retry-next-cycle.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx

from reddit_fetch.adapters.reddit_mapper import parse_listing
from reddit_fetch.core.errors import TransientFetchError
from reddit_fetch.core.models import CandidateImage, DownloadedMedia

LOGGER = logging.getLogger(__name__)

REDDIT_API_BASE = "https://oauth.reddit.com"
REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
# Refresh a little before Reddit says the token expires.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class RedditClient:
    """Fetch new posts and download images with application-only OAuth."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        user_agent: str,
        posts_per_source: int = 10,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._user_agent = user_agent
        self._posts_per_source = posts_per_source
        self._http = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    async def __aenter__(self) -> "RedditClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get_access_token(self) -> str:
        """Return a cached token or request a new client-credentials token."""

        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        try:
            response = await self._http.post(
                REDDIT_TOKEN_URL,
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials"},
                headers={"User-Agent": self._user_agent},
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f"unexpected token payload of type {type(data).__name__}")
            token = data.get("access_token")
            expires_in = float(data.get("expires_in") or 3600)
        except httpx.HTTPStatusError as exc:
            raise TransientFetchError(f"token request failed with {exc.response.status_code}") from exc
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            raise TransientFetchError(f"token request failed: {exc}") from exc

        if not token or not isinstance(token, str):
            raise TransientFetchError("token response has no access_token")

        self._access_token = token
        self._token_expires_at = time.monotonic() + max(0.0, expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        LOGGER.info("Obtained new Reddit access token")
        return token

    async def fetch_candidates(self, source_name: str) -> list[CandidateImage]:
        """Return the newest posts of a subreddit as candidates."""

        token = await self._get_access_token()
        try:
            response = await self._http.get(
                f"{REDDIT_API_BASE}/r/{source_name}/new",
                params={"limit": self._posts_per_source, "raw_json": 1},
                headers={
                    "Authorization": f"Bearer {token}",
                    "User-Agent": self._user_agent,
                },
            )
            if response.status_code == 401:
                # Token revoked early; force a refresh on the next cycle.
                self._access_token = None
            response.raise_for_status()
            candidates = parse_listing(response.json())
        except httpx.HTTPStatusError as exc:
            raise TransientFetchError(
                f"r/{source_name} returned {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise TransientFetchError(f"r/{source_name} request failed: {exc}") from exc

        LOGGER.debug("Fetched %s posts from r/%s", len(candidates), source_name)
        return candidates

    async def download(self, url: str) -> DownloadedMedia:
        """Download an image and report its declared content type."""

        if not url:
            raise TransientFetchError("empty image url")

        LOGGER.debug("Starting download of image: %s", url)
        try:
            response = await self._http.get(url, headers={"User-Agent": self._user_agent})
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransientFetchError(f"download returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"download failed: {exc}") from exc

        return DownloadedMedia(
            content=response.content,
            content_type=response.headers.get("content-type"),
        )
