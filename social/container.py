"""
Application wiring.

``Container`` builds one event bus, one transaction manager, the three
repositories and the services on top of a session factory.  The FastAPI app
holds a single container; tests build their own against a throwaway
database and override ``get_container``.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from social.cache import CacheManager
from social.events import EventBus, Subscription
from social.events.subscribers import register_subscribers
from social.repositories import CommentRepository, PostRepository, UserRepository
from social.security import TokenIssuer
from social.services import AuthService, CommentService, PostService, UserService
from social.transactions import TransactionManager


class Container:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheManager | None = None,
        tokens: TokenIssuer | None = None,
        *,
        subscribe_defaults: bool = True,
    ) -> None:
        self.session_factory = session_factory
        self.cache = cache
        self.event_bus = EventBus()
        self.transactions = TransactionManager(session_factory)

        self.user_repo = UserRepository(session_factory)
        self.post_repo = PostRepository(session_factory)
        self.comment_repo = CommentRepository(session_factory)

        self.users = UserService(self.user_repo, self.event_bus, self.transactions)
        self.posts = PostService(
            self.post_repo,
            self.user_repo,
            self.event_bus,
            self.transactions,
            cache=cache,
        )
        self.comments = CommentService(
            self.comment_repo,
            self.post_repo,
            self.user_repo,
            self.event_bus,
            self.transactions,
        )
        self.auth = AuthService(self.users, tokens or TokenIssuer.from_settings())

        self.subscriptions: list[Subscription] = []
        if subscribe_defaults:
            self.subscriptions = register_subscribers(self.event_bus, cache)

    def close(self) -> None:
        """Drop the subscriptions registered at construction."""
        for subscription in self.subscriptions:
            self.event_bus.unsubscribe(subscription)
        self.subscriptions = []
