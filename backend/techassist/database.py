"""
MongoDB connection lifecycle.

One Connector per process owns the cached client. Requests, health checks
and the diagnostics endpoint all obtain the handle through
``Connector.ensure_connected()``, which reuses a live handle and makes sure
only one physical connection attempt runs at a time, which matters on
serverless cold starts where several requests can arrive before the
first connection is up.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit

from fastapi import Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import InvalidURI, PyMongoError

from techassist.config import Settings
from techassist.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
    PingError,
    StatsError,
)
from techassist.utils.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[..., Any]


class ConnectionStatus(str, Enum):
    """Lifecycle states of the shared connection."""
    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectConfig:
    """Immutable connection settings, built once at startup."""
    uri: Optional[str]
    db_name: str
    server_selection_timeout_ms: int = 5000
    socket_timeout_ms: int = 45000
    connect_timeout_ms: int = 10000
    max_pool_size: int = 10
    min_pool_size: int = 1
    max_idle_time_ms: int = 30000
    app_name: Optional[str] = None
    wait_timeout: Optional[float] = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectConfig":
        return cls(
            uri=settings.mongodb_uri,
            db_name=settings.mongodb_db_name,
            server_selection_timeout_ms=settings.mongodb_server_selection_timeout_ms,
            socket_timeout_ms=settings.mongodb_socket_timeout_ms,
            connect_timeout_ms=settings.mongodb_connect_timeout_ms,
            max_pool_size=settings.mongodb_max_pool_size,
            min_pool_size=settings.mongodb_min_pool_size,
            max_idle_time_ms=settings.mongodb_max_idle_time_ms,
            app_name=settings.app_name,
            wait_timeout=settings.db_connect_wait_timeout,
        )

    def client_options(self) -> Dict[str, Any]:
        """Keyword arguments passed to the motor client."""
        options: Dict[str, Any] = {
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "socketTimeoutMS": self.socket_timeout_ms,
            "connectTimeoutMS": self.connect_timeout_ms,
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "maxIdleTimeMS": self.max_idle_time_ms,
        }
        if self.app_name:
            options["appname"] = self.app_name
        return options


def host_from_uri(uri: Optional[str]) -> Optional[str]:
    """
    Return the first host of a MongoDB connection string, without credentials.

    Multi-host URIs (``mongodb://a:27017,b:27017/db``) report the first host.
    """
    if not uri:
        return None
    netloc = urlsplit(uri).netloc
    hosts = netloc.rsplit("@", 1)[-1]
    return hosts.split(",")[0] or None


@dataclass
class MongoHandle:
    """An established session: the client plus the selected database."""
    client: Any
    database: AsyncIOMotorDatabase
    name: str
    host: Optional[str]
    closed: bool = False

    @property
    def is_alive(self) -> bool:
        return not self.closed

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.client.close()


@dataclass
class ConnectionState:
    """Mutable connection state; only the Connector writes to it."""
    handle: Optional[MongoHandle] = None
    status: ConnectionStatus = ConnectionStatus.IDLE
    last_error: Optional[DatabaseError] = None
    attempts: int = field(default=0)

    def mark_ready(self, handle: MongoHandle) -> None:
        self.handle = handle
        self.status = ConnectionStatus.READY
        self.last_error = None

    def mark_failed(self, error: DatabaseError) -> None:
        self.handle = None
        self.status = ConnectionStatus.FAILED
        self.last_error = error


DNS_FAILURE_MARKERS = (
    "DNS",
    "nameservers",
    "resolution lifetime",
)


def _wrap_driver_error(exc: PyMongoError) -> DatabaseError:
    """
    Map a driver exception to a typed error.

    pymongo raises its ConfigurationError both for malformed URIs and for
    failed SRV lookups on mongodb+srv:// hosts; the latter are network
    failures.
    """
    if isinstance(exc, InvalidURI):
        return ConfigurationError("Invalid MONGODB_URI", detail=str(exc))
    if isinstance(exc, PyMongoConfigurationError):
        message = str(exc)
        if any(marker in message for marker in DNS_FAILURE_MARKERS):
            return DatabaseConnectionError(message)
        return ConfigurationError("Invalid MONGODB_URI", detail=message)
    return DatabaseConnectionError(str(exc))


def _consume_exception(task: "asyncio.Future[Any]") -> None:
    # Waiters may all have timed out; keep the loop from warning about it.
    if not task.cancelled():
        task.exception()


class Connector:
    """
    Produces a ready MongoDB handle, reusing the cached one when it is alive.

    Concurrent callers that find an attempt in flight await that same attempt
    rather than starting another. A failed attempt is reported to every
    waiter and is not retried; the next call starts a fresh attempt.
    """

    def __init__(
        self,
        config: ConnectConfig,
        client_factory: ClientFactory = AsyncIOMotorClient,
    ):
        self.config = config
        self.state = ConnectionState()
        self._client_factory = client_factory
        self._inflight: Optional["asyncio.Future[MongoHandle]"] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, client_factory: ClientFactory = AsyncIOMotorClient
    ) -> "Connector":
        return cls(ConnectConfig.from_settings(settings), client_factory=client_factory)

    @property
    def status(self) -> ConnectionStatus:
        return self.state.status

    async def ensure_connected(self) -> MongoHandle:
        """
        Return a ready handle, connecting if needed.

        Raises:
            ConfigurationError: MONGODB_URI is not set or is malformed.
            DatabaseConnectionError: the driver could not connect, or the wait
                for an in-flight attempt exceeded ``config.wait_timeout``.
        """
        handle = self.state.handle
        if self.state.status is ConnectionStatus.READY and handle is not None and handle.is_alive:
            return handle

        if self._inflight is None:
            self.state.status = ConnectionStatus.CONNECTING
            self._inflight = asyncio.ensure_future(self._connect())
            self._inflight.add_done_callback(_consume_exception)

        try:
            # shield: a waiter giving up must not cancel the attempt for the others
            return await asyncio.wait_for(
                asyncio.shield(self._inflight), timeout=self.config.wait_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out waiting for database connection",
                wait_timeout=self.config.wait_timeout,
            )
            raise DatabaseConnectionError(
                "Timed out waiting for the database connection",
                detail=f"waited {self.config.wait_timeout}s",
            )

    async def _connect(self) -> MongoHandle:
        self.state.attempts += 1
        try:
            handle = await self._open()
        except Exception as exc:
            error = exc if isinstance(exc, DatabaseError) else DatabaseConnectionError(
                f"Unexpected error while connecting: {exc}"
            )
            self.state.mark_failed(error)
            logger.error(
                "MongoDB connection failed",
                kind=error.kind.value,
                error=error.message,
                attempt=self.state.attempts,
            )
            if error is exc:
                raise
            raise error from exc
        finally:
            self._inflight = None

        self.state.mark_ready(handle)
        logger.info(
            "MongoDB connected",
            host=handle.host,
            database=handle.name,
            attempt=self.state.attempts,
        )
        return handle

    async def _open(self) -> MongoHandle:
        uri = self.config.uri
        if not uri:
            raise ConfigurationError("MONGODB_URI is not defined")

        stale = self.state.handle
        if stale is not None:
            self.state.handle = None
            logger.info("Closing stale MongoDB client", host=stale.host)
            stale.close()

        try:
            client = self._client_factory(uri, **self.config.client_options())
        except PyMongoError as exc:
            raise _wrap_driver_error(exc) from exc
        except (ValueError, TypeError) as exc:
            # pymongo validates pool and timeout options with plain ValueError
            raise ConfigurationError(
                "Invalid MongoDB client options", detail=str(exc)
            ) from exc

        try:
            await client.admin.command("ping")
            database = client.get_default_database(default=self.config.db_name)
        except PyMongoError as exc:
            client.close()
            raise _wrap_driver_error(exc) from exc
        except Exception:
            client.close()
            raise

        return MongoHandle(
            client=client,
            database=database,
            name=database.name,
            host=host_from_uri(uri),
        )

    async def ping(self, handle: MongoHandle) -> None:
        """Issue an administrative ping against the live session."""
        try:
            await handle.client.admin.command("ping")
        except PyMongoError as exc:
            raise PingError(str(exc)) from exc

    async def stats(self, handle: MongoHandle) -> Dict[str, Any]:
        """Fetch aggregate statistics for the selected database."""
        try:
            return await handle.database.command("dbStats")
        except PyMongoError as exc:
            raise StatsError(str(exc)) from exc

    async def close(self) -> None:
        """
        Close the cached client and return to idle.

        Call this during application shutdown.
        """
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            try:
                await inflight
            except DatabaseError:
                pass  # already logged by _connect; nothing left to close
        handle = self.state.handle
        self.state.handle = None
        self.state.status = ConnectionStatus.IDLE
        if handle is not None:
            handle.close()
            logger.info("MongoDB connection closed", host=handle.host)


def get_connector(request: Request) -> Connector:
    """Dependency returning the process-wide Connector from app state."""
    return request.app.state.connector


async def get_database(
    connector: Connector = Depends(get_connector),
) -> AsyncIOMotorDatabase:
    """
    Dependency for getting the application database.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(db: AsyncIOMotorDatabase = Depends(get_database)):
            ...
    """
    try:
        handle = await connector.ensure_connected()
    except DatabaseError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection error",
        ) from exc
    return handle.database
