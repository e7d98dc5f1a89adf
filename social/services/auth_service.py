import logging

from social.context import RequestContext
from social.schemas import AuthResponse, LoginRequest, RegisterRequest, UserInfo
from social.security import TokenIssuer
from social.services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and token validation.

    Registration goes through ``UserService.create_user`` so it shares the
    same checks, transaction and ``user.created`` event as ``POST /users``.
    """

    def __init__(self, users: UserService, tokens: TokenIssuer) -> None:
        self.users = users
        self.tokens = tokens

    async def register(self, ctx: RequestContext, data: RegisterRequest) -> AuthResponse:
        user = await self.users.create_user(ctx, data)
        token = self.tokens.issue(user.id, user.email)
        return AuthResponse(
            token=token,
            user=UserInfo(id=user.id, username=user.username, email=user.email),
        )

    async def login(self, ctx: RequestContext, data: LoginRequest) -> AuthResponse:
        user = await self.users.authenticate(ctx, data.email, data.password)
        logger.info("User %s logged in", user.id)
        return AuthResponse(
            token=self.tokens.issue(user.id, user.email),
            user=UserInfo.model_validate(user),
        )

    def validate_token(self, token: str) -> tuple[int, str]:
        return self.tokens.validate(token)
