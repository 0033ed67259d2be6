from urllib.parse import quote

from loguru import logger

from video_interview.clients.supabase_client import SupabaseClient


class MediaStorage:
    """Object storage bucket for recorded takes."""

    def __init__(self, client: SupabaseClient, bucket: str = "interview-responses"):
        self.client = client
        self.bucket = bucket

    async def store(self, key: str, data: bytes, content_type: str = "video/webm") -> str:
        """Upload `data` under `key` (never overwriting) and return its storage path."""
        await self.client.request(
            "POST",
            f"/storage/v1/object/{self.bucket}/{quote(key)}",
            data=data,
            headers={"Content-Type": content_type, "x-upsert": "false"},
        )
        logger.info(f"📤 Stored {len(data) / 1024:.1f}KB at {self.bucket}/{key}")
        return f"{self.bucket}/{key}"

    def public_location_of(self, key: str) -> str:
        return f"{self.client.base_url}/storage/v1/object/public/{self.bucket}/{quote(key)}"
