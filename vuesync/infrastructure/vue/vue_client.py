"""Emporia Vue API client.

See https://github.com/magico13/PyEmVue/blob/master/api_docs.md for the protocol.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from vuesync.core.exceptions import HistoryFetchError, UpstreamRequestError
from vuesync.domain.entities.scale import EnergyUnit, Scale
from vuesync.infrastructure.base_client import BaseApiClient
from vuesync.schemas.devices import ChartUsage, Device, DeviceListUsages, DeviceUsage

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.emporiaenergy.com"


def format_instant(ts: datetime) -> str:
    """RFC 3339 in UTC with a Z suffix, as the AppAPI expects."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    text = ts.replace(tzinfo=None).isoformat(timespec="seconds")
    return f"{text}Z"


class VueClient(BaseApiClient):
    """Client for the Emporia Vue device and usage APIs.

    Authentication and throttling are the job of the httpx client passed in
    (see ``vuesync.dependencies.build_vue_client``).
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_API_BASE):
        super().__init__(base_url, client=client)

    def _error(self, message: str, **context: Any) -> Exception:
        return UpstreamRequestError(message, **context)

    async def get_devices(self) -> List[Device]:
        """Fetch all the customer devices."""
        path = "/customers/devices"
        response = await self._make_request("GET", path)
        body = self._decode_json(response, path)
        try:
            devices = [Device.model_validate(d) for d in (body.get("devices") or [])]
        except (AttributeError, ValidationError) as e:
            raise UpstreamRequestError(f"{path}: unexpected response: {e}", endpoint=path) from e
        logger.info(f"📋 Found {len(devices)} devices")
        return devices

    async def get_usage(
        self,
        devices: Sequence[int],
        instant: datetime,
        scale: Scale,
        energy_unit: EnergyUnit,
    ) -> Tuple[datetime, List[DeviceUsage]]:
        """Fetch the current usage values of the given devices for a scale."""
        path = "/AppAPI"
        params = {
            "apiMethod": "getDeviceListUsages",
            "deviceGids": " ".join(str(d) for d in devices),
            "instant": format_instant(instant),
            "scale": str(scale),
            "energyUnit": str(energy_unit),
        }
        response = await self._make_request("GET", path, params=params)
        body = self._decode_json(response, path)
        try:
            usages = DeviceListUsages.model_validate(body["deviceListUsages"])
        except (KeyError, TypeError, ValidationError) as e:
            raise UpstreamRequestError(f"getDeviceListUsages: unexpected response: {e}", endpoint=path) from e
        return usages.instant, usages.devices

    async def get_history(
        self,
        device_gid: int,
        channel: str,
        start: datetime,
        end: datetime,
        scale: Scale,
        energy_unit: EnergyUnit,
        page_size: Optional[timedelta] = None,
    ) -> ChartUsage:
        """
        Fetch the chart history for a channel over [start, end).

        Multiple requests are performed as needed to paginate the results.
        Not all scales are supported because their page sizes are unknown.
        As data is aggregated serverside, only a limited view is available.

        Args:
            device_gid: Device the channel belongs to
            channel: Channel selector, e.g. "1,2,3"
            start: First instant to fetch
            end: Instant to stop at (exclusive)
            scale: Bucket size
            energy_unit: Unit to convert usage into
            page_size: Span of one request; defaults to the scale's page size

        Returns:
            ChartUsage anchored at the first page's first usage instant

        Raises:
            ScaleConfigurationError: If the scale has no known page size
            HistoryFetchError: If any page request fails
        """
        page_size = page_size or scale.page_size
        if page_size <= timedelta(0):
            raise ValueError(f"page size must be positive, got {page_size}")

        first_instant: Optional[datetime] = None
        usage: List[Optional[float]] = []
        cursor = start
        pages = 0
        while cursor < end:
            page_end = min(end, cursor + page_size)
            try:
                page = await self.get_history_page(device_gid, channel, cursor, page_end, scale, energy_unit)
            except Exception as e:
                raise HistoryFetchError(
                    f"history for device {device_gid} channel {channel!r} "
                    f"page {format_instant(cursor)} -> {format_instant(page_end)}: {e}",
                    endpoint=getattr(e, "endpoint", None),
                    status_code=getattr(e, "status_code", None),
                    body=getattr(e, "body", None),
                ) from e
            if pages == 0:
                first_instant = page.first_usage_instant
            usage.extend(page.usage_list)
            cursor = page_end
            pages += 1

        logger.debug(f"Fetched {len(usage)} slots in {pages} pages for {device_gid}/{channel}")
        return ChartUsage(first_usage_instant=first_instant, usage_list=usage)

    async def get_history_page(
        self,
        device_gid: int,
        channel: str,
        start: datetime,
        end: datetime,
        scale: Scale,
        energy_unit: EnergyUnit,
    ) -> ChartUsage:
        """Issue a single request for one page of chart data."""
        logger.info(
            f"getChartUsage {device_gid} {channel} ({format_instant(start)} -> {format_instant(end)}) "
            f"{scale} {energy_unit}"
        )
        path = "/AppAPI"
        params = {
            "apiMethod": "getChartUsage",
            "deviceGid": str(device_gid),
            "channel": channel,
            "start": format_instant(start),
            "end": format_instant(end),
            "scale": str(scale),
            "energyUnit": str(energy_unit),
        }
        response = await self._make_request("GET", path, params=params)
        body = self._decode_json(response, path)
        try:
            return ChartUsage.model_validate(body)
        except ValidationError as e:
            raise UpstreamRequestError(f"getChartUsage: unexpected response: {e}", endpoint=path) from e
