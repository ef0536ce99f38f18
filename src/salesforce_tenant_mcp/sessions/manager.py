"""Per-tenant Salesforce session lifecycle.

The :class:`SessionManager` registers tenants with an authorization code,
keeps their access tokens fresh on a fixed timer, and hands out immutable
session snapshots.

Mutations (register, adopt, refresh, timer-driven refresh) for one tenant
run one at a time, in submission order, under that tenant's lock. Tenants
never wait on each other. Reads take no lock.

A failed refresh leaves the previous session in place: it stays usable
with its last known token until a later refresh succeeds. The refresh timer
is re-armed after every mutation, whether it succeeded or not.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

from ..config import REFRESH_INTERVAL_SECONDS, ManagerSettings
from ..errors import AuthenticationError, ManagerClosedError, SalesforceError
from ..logging_config import get_logger, mask_secret
from ..oauth.exchanger import OAuthExchanger, TokenResponse
from ..salesforce.api import SalesforceApi
from ..salesforce.client import SalesforceClient
from ..salesforce.http import HttpExecutor
from .models import (
    RefreshConfig,
    RefreshResult,
    RegistrationConfig,
    RegistrationResult,
    Session,
    TenantConfig,
    TenantId,
    canonical_tenant_id,
)
from .store import SessionStore

logger = get_logger("sessions.manager")


def _auth_error(
    action: str, tenant_id: TenantId, cause: SalesforceError
) -> AuthenticationError:
    return AuthenticationError(
        f"Failed to {action} tenant {tenant_id} with Salesforce: {cause}",
        error_code=getattr(cause, "error_code", None),
    )


class SessionManager:
    """Holds and refreshes Salesforce sessions for many tenants.

    Args:
        exchanger: OAuth token exchanger
        api: Salesforce REST wrapper used for versions and identity
        refresh_interval: Seconds between refreshes for every tenant
        store: Session store (a fresh in-memory store by default)
        executor: HTTP executor to close on :meth:`close`, if owned
    """

    def __init__(
        self,
        exchanger: OAuthExchanger,
        api: SalesforceApi,
        *,
        refresh_interval: float = REFRESH_INTERVAL_SECONDS,
        store: SessionStore | None = None,
        executor: HttpExecutor | None = None,
    ) -> None:
        self._exchanger = exchanger
        self._api = api
        self.refresh_interval = refresh_interval
        self._store = store or SessionStore()
        self._executor = executor
        self._locks: dict[TenantId, asyncio.Lock] = {}
        self._timers: dict[TenantId, asyncio.TimerHandle] = {}
        self._background: set[asyncio.Task[None]] = set()
        self._closed = False

    @classmethod
    def from_env(cls, settings: ManagerSettings | None = None) -> "SessionManager":
        """Create a manager with its own HTTP executor from environment settings."""
        settings = settings or ManagerSettings.from_env()
        executor = HttpExecutor(
            timeout=settings.http_timeout, retries=settings.http_retries
        )
        return cls(
            OAuthExchanger(executor),
            SalesforceApi(executor, user_agent=settings.user_agent),
            refresh_interval=settings.refresh_interval,
            executor=executor,
        )

    @property
    def api(self) -> SalesforceApi:
        return self._api

    # Reads

    def get(self, tenant_id: str | int) -> Session:
        """Return the tenant's current session snapshot.

        Never performs I/O and never waits on a pending mutation.

        Raises:
            NotRegisteredError: If the tenant has no session
        """
        return self._store.get(canonical_tenant_id(tenant_id))

    def get_client(self, tenant_id: str | int) -> SalesforceClient:
        """Shortcut for ``get(tenant_id).client``."""
        return self.get(tenant_id).client

    def tenant_ids(self) -> list[TenantId]:
        return self._store.tenant_ids()

    def refresh_scheduled(self, tenant_id: str | int) -> bool:
        """True if a refresh timer is armed for the tenant."""
        return canonical_tenant_id(tenant_id) in self._timers

    def __contains__(self, tenant_id: object) -> bool:
        return isinstance(tenant_id, (str, int)) and str(tenant_id) in self._store

    # Mutations

    async def register(self, config: RegistrationConfig) -> RegistrationResult:
        """Register a tenant by exchanging an authorization code.

        Exchanges the code, resolves the latest API version, validates the
        token by fetching the identity document, stores the session and arms
        the refresh timer. Registering an existing tenant replaces its
        session.

        Raises:
            AuthenticationError: If the exchange, version lookup or identity
                fetch fails. Nothing is stored in that case.
            ManagerClosedError: If the manager was closed meanwhile
        """
        tenant_id = canonical_tenant_id(config.tenant_id)
        async with self._lock_for(tenant_id):
            logger.info(
                "Registering tenant %s: auth_url=%s", tenant_id, config.auth_url
            )
            try:
                token = await self._exchanger.exchange_code(
                    config.auth_url,
                    client_id=config.client_id,
                    client_secret=config.client_secret,
                    redirect_uri=config.redirect_uri,
                    code=config.code,
                    code_verifier=config.code_verifier,
                    code_challenge_method=config.code_challenge_method,
                )
                client = await self._build_client(token)
                identity = await self._api.identity(client, token.id)
            except SalesforceError as e:
                logger.warning("Failed to authenticate tenant %s: %s", tenant_id, e)
                raise _auth_error("authenticate", tenant_id, e) from e
            else:
                session = Session.build(
                    tenant_id,
                    TenantConfig.from_registration(config),
                    client,
                    identity=identity,
                    refresh_token=token.refresh_token,
                )
                self._put(session)
            finally:
                self._rearm(tenant_id)

            logger.info(
                "Registered tenant %s: instance_url=%s, api_version=%s",
                tenant_id,
                session.instance_url,
                client.api_version,
            )
            return RegistrationResult(
                metadata={**identity, "instance_url": session.instance_url},
                access_token=session.config.access_token,
                refresh_token=session.config.refresh_token,
            )

    async def adopt(self, config: RefreshConfig) -> RefreshResult:
        """Hydrate a tenant from a stored refresh token.

        Used at startup for tenants registered by an earlier process.

        Raises:
            AuthenticationError: If the refresh exchange, version lookup or
                identity fetch fails. Nothing is stored in that case.
            ManagerClosedError: If the manager was closed meanwhile
        """
        tenant_id = canonical_tenant_id(config.tenant_id)
        async with self._lock_for(tenant_id):
            base = TenantConfig.from_refresh(config)
            try:
                token = await self._exchange_refresh(base)
                client = await self._build_client(token)
                identity = {}
                if token.id:
                    identity = await self._api.identity(client, token.id)
            except SalesforceError as e:
                logger.warning("Failed to adopt tenant %s: %s", tenant_id, e)
                raise _auth_error("authenticate", tenant_id, e) from e
            else:
                session = Session.build(
                    tenant_id,
                    base,
                    client,
                    identity=identity,
                    refresh_token=token.refresh_token,
                )
                self._put(session)
            finally:
                self._rearm(tenant_id)

            logger.info(
                "Adopted tenant %s: instance_url=%s", tenant_id, session.instance_url
            )
            return RefreshResult(
                access_token=session.config.access_token,
                refresh_token=session.config.refresh_token,
            )

    async def refresh(self, tenant_id: str | int) -> RefreshResult:
        """Refresh the tenant's access token and swap in a new session.

        Raises:
            NotRegisteredError: If the tenant has no session
            AuthenticationError: If the refresh fails; the previous session
                is kept as is
            ManagerClosedError: If the manager was closed meanwhile
        """
        tenant_id = canonical_tenant_id(tenant_id)
        async with self._lock_for(tenant_id):
            current = self._store.get(tenant_id)
            try:
                token = await self._exchange_refresh(current.config)
                client = await self._build_client(token)
            except SalesforceError as e:
                logger.warning(
                    "Failed to refresh tenant %s, keeping current session: %s",
                    tenant_id,
                    e,
                )
                raise _auth_error("refresh", tenant_id, e) from e
            else:
                session = Session.build(
                    tenant_id,
                    current.config,
                    client,
                    identity=current.identity,
                    refresh_token=token.refresh_token,
                )
                self._put(session)
            finally:
                self._rearm(tenant_id)

            logger.info(
                "Refreshed tenant %s: access_token=%s",
                tenant_id,
                mask_secret(session.config.access_token),
            )
            return RefreshResult(
                access_token=session.config.access_token,
                refresh_token=session.config.refresh_token,
            )

    async def bootstrap(self, configs: Iterable[RefreshConfig]) -> list[TenantId]:
        """Adopt many tenants concurrently.

        Failures are logged and skipped.

        Returns:
            list: Tenant ids adopted successfully
        """
        configs = list(configs)
        results = await asyncio.gather(
            *(self.adopt(config) for config in configs), return_exceptions=True
        )
        adopted: list[TenantId] = []
        for config, result in zip(configs, results):
            if isinstance(result, SalesforceError):
                logger.warning(
                    "Skipping tenant %s at startup: %s", config.tenant_id, result
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                adopted.append(canonical_tenant_id(config.tenant_id))
        logger.info("Bootstrapped %d of %d tenant(s)", len(adopted), len(configs))
        return adopted

    async def close(self) -> None:
        """Cancel timers and pending refreshes, drop all sessions."""
        self._closed = True
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._store.clear()
        if self._executor is not None:
            await self._executor.close()
        logger.info("Session manager closed")

    # Internals

    def _lock_for(self, tenant_id: TenantId) -> asyncio.Lock:
        lock = self._locks.get(tenant_id)
        if lock is None:
            lock = self._locks[tenant_id] = asyncio.Lock()
        return lock

    async def _exchange_refresh(self, config: TenantConfig) -> TokenResponse:
        if not config.refresh_token:
            raise AuthenticationError("No refresh token stored for tenant")
        return await self._exchanger.refresh(
            config.auth_url,
            client_id=config.client_id,
            client_secret=config.client_secret,
            refresh_token=config.refresh_token,
        )

    async def _build_client(self, token: TokenResponse) -> SalesforceClient:
        api_version = await self._api.latest_version(token.instance_url)
        return self._api.build_client(
            token.instance_url, token.access_token, api_version
        )

    def _put(self, session: Session) -> None:
        if self._closed:
            raise ManagerClosedError(session.tenant_id)
        self._store.put(session)

    def _rearm(self, tenant_id: TenantId) -> None:
        """Replace the tenant's timer with a fresh one-shot timer."""
        handle = self._timers.pop(tenant_id, None)
        if handle is not None:
            handle.cancel()
        if self._closed or tenant_id not in self._store:
            return
        loop = asyncio.get_running_loop()
        self._timers[tenant_id] = loop.call_later(
            self.refresh_interval, self._on_timer, tenant_id
        )

    def _on_timer(self, tenant_id: TenantId) -> None:
        self._timers.pop(tenant_id, None)
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(
            self._refresh_unattended(tenant_id),
            name=f"salesforce-refresh-{tenant_id}",
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh_unattended(self, tenant_id: TenantId) -> None:
        logger.debug("Scheduled refresh for tenant %s", tenant_id)
        try:
            await self.refresh(tenant_id)
        except SalesforceError as e:
            logger.warning(
                "Scheduled refresh failed for tenant %s, session left stale: %s",
                tenant_id,
                e,
            )
        except Exception:
            logger.exception(
                "Unexpected error in scheduled refresh for tenant %s", tenant_id
            )
