"""Export Service - copies new Vue history into VictoriaMetrics, one channel at a time"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from vuesync.core.exceptions import ExportError
from vuesync.domain.entities.export_result import ChannelExportResult, ExportSummary
from vuesync.domain.entities.metric import Metric, Sample, Series, format_value
from vuesync.domain.entities.scale import EnergyUnit, Scale
from vuesync.domain.services.resume_service import ResumePointResolver
from vuesync.schemas.devices import Channel

logger = logging.getLogger(__name__)

DEFAULT_METRIC_NAME = "vue_kwh"
DEFAULT_FLUSH_THRESHOLD = 1000
TOTAL_CHANNEL_NAME = "__total__"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryExportService:
    """Runs one incremental export pass for every channel of every device."""

    def __init__(
        self,
        vue,
        store,
        resolver: Optional[ResumePointResolver] = None,
        scale: Scale = Scale.ONE_MINUTE,
        energy_unit: EnergyUnit = EnergyUnit.KILOWATT_HOURS,
        flush_threshold: int = DEFAULT_FLUSH_THRESHOLD,
        page_size: Optional[timedelta] = None,
        metric_name: str = DEFAULT_METRIC_NAME,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if flush_threshold < 1:
            raise ValueError(f"flush threshold must be at least 1, got {flush_threshold}")
        self.vue = vue
        self.store = store
        self.resolver = resolver or ResumePointResolver(store)
        self.scale = scale.validate_for_history()
        self.energy_unit = energy_unit
        self.flush_threshold = flush_threshold
        self.page_size = page_size
        self.metric_name = metric_name
        self.clock = clock or _utcnow

    def _identity_labels(self, channel: Channel) -> Dict[str, str]:
        return {
            "dev_gid": str(channel.device_gid),
            "chan": channel.channel_num,
            "scale": str(self.scale),
        }

    def series_selector(self, channel: Channel) -> str:
        """Selector of the stored series for a channel (identity labels only)."""
        return Metric(self.metric_name, self._identity_labels(channel)).selector()

    def channel_metric(self, channel: Channel) -> Metric:
        """Metric the channel's samples are pushed under."""
        labels = self._identity_labels(channel)
        labels["name"] = channel.name or TOTAL_CHANNEL_NAME
        labels["chan_mult"] = format_value(channel.channel_multiplier)
        return Metric(self.metric_name, labels)

    async def export_all(self, lookback: timedelta, until: Optional[datetime] = None) -> ExportSummary:
        """
        Export every channel of every device, stopping at the first failure.

        Args:
            lookback: How far before ``until`` to look for missing history
            until: End of the pass; defaults to now

        Returns:
            ExportSummary with one result per channel

        Raises:
            ExportError: Naming the channel whose export failed
        """
        until = until or self.clock()
        since = until - lookback
        devices = await self.vue.get_devices()
        summary = ExportSummary(scale=str(self.scale), until=until)

        channels: List[Channel] = [ch for dev in devices for ch in dev.iter_channels()]
        logger.info(f"🔄 Exporting {len(channels)} channels from {since.isoformat()} to {until.isoformat()}")
        for channel in channels:
            selector = self.series_selector(channel)
            try:
                result = await self.export_channel(channel, since, until)
            except Exception as e:
                logger.error(f"❌ Export of {selector} failed: {e}")
                raise ExportError(f"export of {selector} failed: {e}", channel=selector) from e
            summary.channels.append(result)

        logger.info(f"✅ Export finished: {summary.total_new_samples} new samples")
        return summary

    async def export_channel(self, channel: Channel, since: datetime, until: datetime) -> ChannelExportResult:
        """Push the history of one channel that the store does not have yet."""
        selector = self.series_selector(channel)
        identity = Metric(self.metric_name, self._identity_labels(channel))
        start = await self.resolver.resolve(identity, since, until, self.scale)

        metric = self.channel_metric(channel)
        result = ChannelExportResult(
            selector=selector,
            device_gid=channel.device_gid,
            channel_num=channel.channel_num,
            name=metric.labels["name"],
            since=start,
            until=until,
        )

        async with self.store.push() as pusher:
            history = await self.vue.get_history(
                channel.device_gid,
                channel.channel_num,
                start,
                until,
                self.scale,
                self.energy_unit,
                page_size=self.page_size,
            )

            step = self.scale.duration
            ts = history.first_usage_instant or start
            series = Series(metric=metric)
            for value in history.usage_list:
                slot, ts = ts, ts + step
                if value is None:
                    continue
                series.samples.append(Sample(value=value, timestamp=slot))
                result.new_samples += 1
                if len(series.samples) >= self.flush_threshold:
                    await pusher.push(series)
                    result.batches += 1
                    series = Series(metric=metric)
            if series.samples:
                await pusher.push(series)
                result.batches += 1

        logger.info(f"series {selector} found {result.new_samples} new samples")
        return result
