from typing import Optional, Protocol

from loguru import logger

from video_interview.orchestrator.schema import AuthResult, Role
from video_interview.utils.error_handlers import AuthenticationRejectedError


class IdentityProvider(Protocol):
    async def authenticate(self, email: str, password: str) -> AuthResult: ...

    async def logout(self, access_token: str) -> None: ...


class SessionContext:
    """
    Who is using the client right now.

    One instance per running client, handed to every component that needs the
    identity or role. Credentials are checked by the identity provider only.
    """

    def __init__(self):
        self.user_id: Optional[str] = None
        self.email: Optional[str] = None
        self.role: Optional[Role] = None
        self.access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None and self.role is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == Role.ADMINISTRATOR

    async def login(self, identity: IdentityProvider, email: str, password: str) -> Role:
        """
        Authenticate through `identity` and fill in the context.

        Raises:
            AuthenticationRejectedError: credentials were not accepted; the
                context is left as it was.
        """
        result = await identity.authenticate(email, password)
        if not result.granted:
            logger.info(f"Login rejected for {email}")
            raise AuthenticationRejectedError()

        self.user_id = result.user_id
        self.email = result.email or email
        self.role = result.role or Role.CANDIDATE
        self.access_token = result.access_token
        logger.info(f"Logged in: {self.email} ({self.role.value})")
        return self.role

    async def logout(self, identity: Optional[IdentityProvider] = None):
        if identity is not None and self.access_token:
            await identity.logout(self.access_token)
        logger.info(f"Logged out: {self.email}")
        self.user_id = None
        self.email = None
        self.role = None
        self.access_token = None
