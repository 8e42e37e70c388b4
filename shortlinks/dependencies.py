"""Dependency injection with a process-wide service manager.

This module builds the shared resources once at startup (settings, logger,
pooled engine, token codec, messaging gateway) and hands them to the API
endpoints, keeping per-request overhead to a small request context.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortlinks.codec import HashCodec
from shortlinks.config import Settings, get_settings
from shortlinks.database import build_engine, close_db, init_db
from shortlinks.gateway import MessageGateway
from shortlinks.url_service import URLShorteningService


# ============================================================================
# SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Owner of the shared resources.

    The codec is built here, once, and passed by reference to every service
    that needs it; nothing builds it lazily on a request path.
    """

    _initialized: bool = False

    async def initialize(self, settings: Optional[Settings] = None, engine: Optional[AsyncEngine] = None) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        if self.settings.uses_default_salt:
            self.logger.warning("HASH_SALT is set to its default value; tokens are trivially reversible")
        self.engine = engine or build_engine(self.settings)
        await init_db(self.engine)
        self.codec = HashCodec(self.settings.HASH_SALT, min_length=self.settings.HASH_MIN_LENGTH)
        self.gateway = MessageGateway(self.engine, request_timeout=self.settings.REQUEST_TIMEOUT_SECONDS)
        self._initialized = True
        self.logger.info(f"{self.settings.APP_NAME} ready (pool size {self.settings.MAX_POOL_SIZE})")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortlinks")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await self.gateway.close()
        await close_db(self.engine)
        self._initialized = False


# Global instance used by the application lifespan
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking on top of the shared service manager.

    Attributes:
        service_manager: Service manager with shared resources
        request_id: Unique identifier for this request
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {"request_id": self.request_id, "client_ip": self.client_ip},
        )

    @property
    def gateway(self) -> MessageGateway:
        return self.service_manager.gateway

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    """Get the initialized service manager."""
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    request_id = request.headers.get("x-request-id")
    if request_id:
        return RequestContext(service_manager=manager, request_id=request_id, client_ip=client_ip)
    return RequestContext(service_manager=manager, client_ip=client_ip)


def get_url_service(ctx: RequestContext = Depends(get_request_context)) -> URLShorteningService:
    """Create the URL service for one request."""
    return URLShorteningService(
        ctx.gateway,
        ctx.service_manager.codec,
        ctx.settings,
        logger=ctx.logger,
    )
