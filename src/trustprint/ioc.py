from collections.abc import AsyncIterator

from dishka import AsyncContainer, Provider, Scope, make_async_container, provide
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from trustprint.api.modules.fingerprint.service import FingerprintService
from trustprint.api.modules.fingerprint.services.identity import (
    FingerprintIdGetter,
    IdentityResolver,
    build_identity_resolver,
)
from trustprint.api.modules.fingerprint.services.network import RequestIpResolver
from trustprint.api.modules.fingerprint.services.reconciliation import (
    FingerprintReconciler,
    FingerprintStore,
    InMemoryFingerprintStore,
    SuspicionCallback,
    SuspicionMonitor,
)
from trustprint.api.modules.fingerprint.services.reconciliation.sql_store import (
    SqlAlchemyFingerprintStore,
)
from trustprint.api.modules.fingerprint.services.validators import (
    ValidatorRegistry,
    build_validator_registry,
)
from trustprint.database import create_engine, create_session_factory, create_tables
from trustprint.settings import Config, FingerprintConfig, get_config


class AppProvider(Provider):
    """Application provider for dependency injection."""

    def __init__(self, config: Config | None = None):
        super().__init__()
        self._config = config

    @provide(scope=Scope.APP)
    def get_config(self) -> Config:
        return self._config or get_config()

    @provide(scope=Scope.APP)
    def get_fingerprint_config(self, config: Config) -> FingerprintConfig:
        return config.fingerprint


class DatabaseProvider(Provider):
    """SQLAlchemy engine, sessions and the SQL-backed record store."""

    @provide(scope=Scope.APP)
    async def get_engine(self, config: Config) -> AsyncIterator[AsyncEngine]:
        engine = create_engine(config.database_url)
        await create_tables(engine)
        yield engine
        await engine.dispose()

    @provide(scope=Scope.APP)
    def get_session_factory(self, engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
        return create_session_factory(engine)

    @provide(scope=Scope.APP)
    def get_fingerprint_store(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> FingerprintStore:
        return SqlAlchemyFingerprintStore(session_factory)


class InMemoryStoreProvider(Provider):
    """Process-local record store, for tests and single-process setups."""

    @provide(scope=Scope.APP)
    def get_fingerprint_store(self) -> FingerprintStore:
        return InMemoryFingerprintStore()


class ServicesProvider(Provider):
    """Services provider for dependency injection."""

    def __init__(
        self,
        fingerprint_id_getter: FingerprintIdGetter | None = None,
        on_suspicious: SuspicionCallback | None = None,
    ):
        super().__init__()
        self._fingerprint_id_getter = fingerprint_id_getter
        self._on_suspicious = on_suspicious

    @provide(scope=Scope.APP)
    def get_validator_registry(self, config: FingerprintConfig) -> ValidatorRegistry:
        return build_validator_registry(
            names=config.modules.validators,
            weights=config.modules.validator_weights,
        )

    @provide(scope=Scope.APP)
    def get_identity_resolver(
        self,
        config: FingerprintConfig,
        validators: ValidatorRegistry,
    ) -> IdentityResolver:
        return build_identity_resolver(
            check_type=config.check_type,
            validators=validators,
            server_headers=config.server_id_headers,
            required_headers=config.server_id_required_headers,
            client_id_header=config.client_id_header,
            getter=self._fingerprint_id_getter,
        )

    @provide(scope=Scope.APP)
    def get_request_ip_resolver(self, config: FingerprintConfig) -> RequestIpResolver:
        return RequestIpResolver(trust_forwarded_ip=config.trust_forwarded_ip)

    @provide(scope=Scope.APP)
    def get_fingerprint_reconciler(
        self,
        config: FingerprintConfig,
        store: FingerprintStore,
    ) -> FingerprintReconciler:
        return FingerprintReconciler(
            store=store,
            save_ip_addresses=config.save_ip_addresses,
            max_update_attempts=config.max_update_attempts,
        )

    @provide(scope=Scope.APP)
    def get_suspicion_monitor(
        self,
        config: FingerprintConfig,
        store: FingerprintStore,
    ) -> SuspicionMonitor:
        return SuspicionMonitor(
            store=store,
            accounts_per_fingerprint=config.suspicious_accounts_per_fingerprint,
            fingerprints_per_account=config.suspicious_fingerprints_per_account,
            on_suspicious=self._on_suspicious,
        )

    @provide(scope=Scope.APP)
    def get_fingerprint_service(
        self,
        config: FingerprintConfig,
        validators: ValidatorRegistry,
        identity: IdentityResolver,
        reconciler: FingerprintReconciler,
        ip_resolver: RequestIpResolver,
        suspicion: SuspicionMonitor,
    ) -> FingerprintService:
        return FingerprintService(
            config=config,
            validators=validators,
            identity=identity,
            reconciler=reconciler,
            ip_resolver=ip_resolver,
            suspicion=suspicion,
        )


def get_async_container(
    config: Config | None = None,
    store_provider: Provider | None = None,
    services_provider: ServicesProvider | None = None,
) -> AsyncContainer:
    return make_async_container(
        AppProvider(config),
        store_provider or DatabaseProvider(),
        services_provider or ServicesProvider(),
    )
