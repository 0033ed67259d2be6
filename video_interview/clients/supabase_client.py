"""
Supabase HTTP client

Thin async wrapper over the backend's REST surfaces (auth, PostgREST tables,
storage). One aiohttp session is shared by the identity provider, the
repositories and the media storage.
"""

from typing import Any, Optional

import aiohttp
from loguru import logger

from video_interview.utils.error_handlers import BackendError


class SupabaseClient:
    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.session = session
        self.access_token: Optional[str] = None

        self.total_requests = 0

        logger.info(f"Backend client ready: {self.base_url}")

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

    def set_access_token(self, access_token: Optional[str]):
        """Use the signed-in user's token for later requests (None goes back to the anon key)."""
        self.access_token = access_token

    def _headers(self, access_token: Optional[str], extra: Optional[dict]) -> dict:
        token = access_token or self.access_token or self.anon_key
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[dict] = None,
        access_token: Optional[str] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body (None when empty).

        Raises:
            BackendError: the backend answered with a 4xx/5xx status.
            aiohttp.ClientError: transport failure.
        """
        await self._ensure_session()
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {path} {params or ''}")

        async with self.session.request(
            method,
            url,
            params=params,
            json=json,
            data=data,
            headers=self._headers(access_token, headers),
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        ) as response:
            self.total_requests += 1
            body = await response.text()
            if response.status >= 400:
                raise BackendError(f"{method} {path} failed: {response.status} - {body}", status=response.status)
            if not body:
                return None
            return await response.json(content_type=None)

    async def close(self):
        if self.session and not self.session.closed:
            await self.session.close()
            logger.debug("Backend HTTP session closed")
