"""
Client assembly for the Lighthouse training platform.
"""

from typing import Optional

import httpx

from lighthouse_shared.config import ClientConfig, get_config
from lighthouse_shared.logging import configure_logging, get_logger
from lighthouse_shared.metrics import MetricsCollector, get_metrics_collector

from .adapters.api_client import LighthouseApiClient
from .gateway import RefreshState
from .gateway.interceptor import SessionExpiredCallback
from .services import AdminService, AuthService, ContentService, GameService
from .session import SessionManager
from .storage import CredentialStore, FileCredentialStore, MemoryCredentialStore


class Lighthouse:
    """Facade over one authenticated API client and the services using it."""

    def __init__(self,
                 config: ClientConfig,
                 store: CredentialStore,
                 state: Optional[RefreshState] = None,
                 on_session_expired: Optional[SessionExpiredCallback] = None,
                 metrics: Optional[MetricsCollector] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("lighthouse.client")

        self.api = LighthouseApiClient(
            config.api_url,
            store,
            state=state if state is not None else RefreshState(),
            on_session_expired=on_session_expired,
            metrics=metrics,
            timeout=config.request_timeout,
            login_path=config.login_path,
            transport=transport,
        )
        self.auth = AuthService(self.api)
        self.game = GameService(self.api)
        self.admin = AdminService(self.api)
        self.content = ContentService(self.api)
        self.session = SessionManager(self.api, self.auth)

    async def aclose(self) -> None:
        await self.api.aclose()

    async def __aenter__(self) -> "Lighthouse":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_store(config: ClientConfig) -> CredentialStore:
    if config.credentials_file:
        return FileCredentialStore(config.credentials_file)
    return MemoryCredentialStore()


def create_client(config: Optional[ClientConfig] = None,
                  on_session_expired: Optional[SessionExpiredCallback] = None,
                  store: Optional[CredentialStore] = None,
                  transport: Optional[httpx.AsyncBaseTransport] = None) -> Lighthouse:
    """Build a configured client from the environment."""
    config = config or get_config()
    configure_logging(config.client_name, config.log_level)

    metrics = get_metrics_collector(config.client_name) if config.metrics_enabled else None
    client = Lighthouse(
        config,
        store if store is not None else create_store(config),
        on_session_expired=on_session_expired,
        metrics=metrics,
        transport=transport,
    )
    client.logger.info("Lighthouse client created", api_url=config.api_url, env=config.env)
    return client
