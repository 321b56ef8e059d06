"""Wiring of the Vue client, the VictoriaMetrics client and the export service."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from vuesync.config import Settings
from vuesync.domain.entities.scale import EnergyUnit, parse_scale
from vuesync.domain.services.export_service import HistoryExportService
from vuesync.domain.services.resume_service import ResumePointResolver
from vuesync.infrastructure.auth.cognito_client import CognitoCredentialProvider
from vuesync.infrastructure.auth.token_source import CredentialProvider, CredentialsFunc, TokenSource, VueTokenAuth
from vuesync.infrastructure.victoriametrics.vm_client import VictoriaMetricsClient
from vuesync.infrastructure.vue.throttle import RateLimiter, ThrottledTransport
from vuesync.infrastructure.vue.vue_client import VueClient
from vuesync.schemas.auth import Token
from vuesync.utils.atom import Atom

logger = logging.getLogger(__name__)


def build_credential_provider(settings: Settings) -> CredentialProvider:
    return CognitoCredentialProvider(
        region=settings.COGNITO_REGION,
        client_id=settings.COGNITO_CLIENT_ID,
        user_pool_id=settings.COGNITO_USER_POOL_ID,
    )


def build_vue_client(
    settings: Settings,
    holder: Atom[Optional[Token]],
    credentials: Optional[CredentialsFunc] = None,
    provider: Optional[CredentialProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VueClient:
    """
    Build a VueClient whose requests are authenticated and rate limited.

    Args:
        settings: Application settings
        holder: Shared token cell; new tokens are written back into it
        credentials: Called for a username/password when a login is needed
        provider: Credential provider; Cognito when omitted
        transport: Underlying transport (tests pass an httpx.MockTransport)
    """
    source = TokenSource(provider or build_credential_provider(settings), holder, credentials)
    limiter = RateLimiter(settings.VUE_RATE_LIMIT_PER_SECOND)
    client = httpx.AsyncClient(
        auth=VueTokenAuth(source),
        transport=ThrottledTransport(limiter, base=transport),
        timeout=settings.HTTP_TIMEOUT,
    )
    logger.debug(f"Vue client for {settings.VUE_API_BASE_URL} at {limiter.rate}/s")
    return VueClient(client, base_url=settings.VUE_API_BASE_URL)


def build_store_client(
    settings: Settings,
    dest: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> VictoriaMetricsClient:
    """Build the VictoriaMetrics client for ``dest`` (or ``VM_DEST``)."""
    dest = dest or settings.VM_DEST
    if not dest:
        raise ValueError("no VictoriaMetrics destination configured (--dest or VM_DEST)")
    client = httpx.AsyncClient(transport=transport, timeout=settings.HTTP_TIMEOUT)
    return VictoriaMetricsClient(dest, client=client)


def build_export_service(settings: Settings, vue: VueClient, store: VictoriaMetricsClient) -> HistoryExportService:
    """Build the export service from the configured scale, unit and batching."""
    return HistoryExportService(
        vue,
        store,
        resolver=ResumePointResolver(store),
        scale=parse_scale(settings.SCALE),
        energy_unit=EnergyUnit(settings.ENERGY_UNIT),
        flush_threshold=settings.FLUSH_THRESHOLD,
        metric_name=settings.METRIC_NAME,
    )
