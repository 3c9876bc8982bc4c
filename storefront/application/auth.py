"""Request-scoped authentication."""

from storefront.application.ports import AuthService
from storefront.domain.value_objects import User


class RequestAuthService(AuthService):
    """AuthService holding a user already resolved for the current request."""

    def __init__(self, user: User | None = None) -> None:
        self._user = user

    async def current_user(self) -> User | None:
        return self._user
