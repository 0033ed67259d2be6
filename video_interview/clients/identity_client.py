from loguru import logger

from video_interview.clients.supabase_client import SupabaseClient
from video_interview.orchestrator.schema import AuthResult, Profile, Role
from video_interview.utils.error_handlers import BackendError

# GoTrue answers a wrong email/password pair with one of these
REJECTED_STATUSES = {400, 401, 403, 422}


class SupabaseIdentityProvider:
    """Password sign-in against the backend's auth service; role from `profiles.is_admin`."""

    def __init__(self, client: SupabaseClient):
        self.client = client

    async def authenticate(self, email: str, password: str) -> AuthResult:
        try:
            data = await self.client.request(
                "POST",
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except BackendError as e:
            if e.status in REJECTED_STATUSES:
                return AuthResult(granted=False)
            raise

        access_token = data["access_token"]
        user = data["user"]
        rows = await self.client.request(
            "GET",
            "/rest/v1/profiles",
            params={"select": "id,email,full_name,is_admin", "id": f"eq.{user['id']}"},
            access_token=access_token,
        )
        # No profile row yet means a plain candidate
        profile = Profile(**rows[0]) if rows else None
        role = Role.ADMINISTRATOR if profile and profile.is_admin else Role.CANDIDATE
        logger.debug(f"Authenticated {user['id']} as {role.value}")

        return AuthResult(
            granted=True,
            role=role,
            user_id=user["id"],
            email=user.get("email") or email,
            access_token=access_token,
        )

    async def logout(self, access_token: str):
        await self.client.request("POST", "/auth/v1/logout", access_token=access_token)
