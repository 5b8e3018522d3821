"""
Application container for USChika.

Builds and owns every long-lived service for one app instance, so tests
get a fresh coordinator per app and nothing lives in module globals.

USAGE:
    # In application startup (lifespan.py):
    container = ApplicationContainer(get_config())
    await container.initialize()
    app.state.container = container

    # In endpoints:
    container = websocket.app.state.container
    container.coordinator.search(connection_id)
"""

from .app.task_registry import TaskRegistry
from .auth_utils import IdentityProvider
from .config.models import AppConfig
from .persistence.database import DatabaseManager
from .persistence.message_sink import NullPersistenceSink, PersistenceSink, SqlAlchemyPersistenceSink
from .realtime.lifecycle_coordinator import LifecycleCoordinator
from .realtime.message_validator import WebSocketMessageValidator
from .realtime.outbound import WebSocketNotifier
from .realtime.rate_limiter import RateLimiter
from .structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ApplicationContainer:
    """
    Holds the chat services for one FastAPI app.

    Services are constructed in __init__ (no I/O); initialize() starts the
    background parts and shutdown() stops them.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.task_registry = TaskRegistry()
        self.identity_provider = IdentityProvider.from_config(config.security)
        self.persistence: PersistenceSink = self._build_persistence(config)
        self.notifier = WebSocketNotifier(self.task_registry, max_queue_size=config.chat.max_queued_events)
        self.coordinator = LifecycleCoordinator(
            notifier=self.notifier,
            identity_provider=self.identity_provider,
            persistence=self.persistence,
        )
        self.message_validator = WebSocketMessageValidator(
            max_frame_bytes=config.chat.max_frame_bytes,
            max_message_length=config.chat.max_message_length,
        )
        self.rate_limiter = RateLimiter(
            max_messages=config.chat.rate_limit_messages,
            window_seconds=config.chat.rate_limit_window,
        )
        self._initialized = False

    def _build_persistence(self, config: AppConfig) -> PersistenceSink:
        if not config.database.url:
            return NullPersistenceSink()
        return SqlAlchemyPersistenceSink(
            DatabaseManager(config.database),
            self.task_registry,
            retention_hours=config.chat.message_retention_hours,
            purge_interval_seconds=config.chat.purge_interval_seconds,
        )

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.persistence.start()
        self._initialized = True
        logger.info(
            "Application container initialized",
            persistence=type(self.persistence).__name__,
            rate_limit_messages=self.rate_limiter.max_messages,
            rate_limit_window=self.rate_limiter.window_seconds,
        )

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        logger.info("Stopping background tasks", **self.task_registry.get_registry_info())
        await self.persistence.stop()
        await self.task_registry.shutdown_all()
        self._initialized = False
        logger.info("Application container shut down")
