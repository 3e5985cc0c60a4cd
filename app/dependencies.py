"""
Process-wide service instances, exposed as FastAPI dependencies so tests can
override them.
"""
from functools import lru_cache

from fastapi import Depends

from app.config import settings
from app.consultation.batch import BatchProcessor
from app.consultation.correlation_store import CorrelationStore, InMemoryCorrelationStore
from app.consultation.flow import ConsultationFlow
from app.consultation.provider_client import ProviderClient
from app.consultation.token_cache import TokenCache
from app.consultation.webhook import WebhookReceiver
from app.database import get_session_factory
from app.identity import IdentityProvider
from app.storage import ResultStorage


@lru_cache(maxsize=None)
def get_correlation_store() -> CorrelationStore:
    return InMemoryCorrelationStore(ttl_seconds=settings.CORRELATION_TTL_SECONDS)


@lru_cache(maxsize=None)
def get_token_cache() -> TokenCache:
    return TokenCache(settings)


@lru_cache(maxsize=None)
def get_provider_client() -> ProviderClient:
    return ProviderClient(settings, get_token_cache())


@lru_cache(maxsize=None)
def get_result_storage() -> ResultStorage:
    return ResultStorage(settings.RESULTS_DIR)


@lru_cache(maxsize=None)
def get_identity_provider() -> IdentityProvider:
    return IdentityProvider(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


def get_consultation_flow(
    store: CorrelationStore = Depends(get_correlation_store),
    client: ProviderClient = Depends(get_provider_client),
) -> ConsultationFlow:
    return ConsultationFlow(
        store,
        client,
        poll_interval=settings.POLL_INTERVAL_SECONDS,
        max_attempts=settings.POLL_MAX_ATTEMPTS,
    )


def get_webhook_receiver(
    store: CorrelationStore = Depends(get_correlation_store),
) -> WebhookReceiver:
    return WebhookReceiver(store)


def get_batch_processor(
    flow: ConsultationFlow = Depends(get_consultation_flow),
    storage: ResultStorage = Depends(get_result_storage),
    session_factory=Depends(get_session_factory),
) -> BatchProcessor:
    return BatchProcessor(flow, storage, session_factory)
