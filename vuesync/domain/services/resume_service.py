"""Resume Service - finds where an incremental export should pick up"""
import logging
from datetime import datetime

from vuesync.domain.entities.metric import InstantSample, Metric, from_epoch_seconds
from vuesync.domain.entities.scale import Scale

logger = logging.getLogger(__name__)


class ResumePointResolver:
    """Asks the store for the newest sample of a series inside a window."""

    def __init__(self, store):
        self.store = store

    async def resolve(self, metric: Metric, start: datetime, end: datetime, scale: Scale) -> datetime:
        """
        Return the first instant still missing from the store.

        Args:
            metric: Identity of the series (name and identifying labels)
            start: Earliest instant of interest
            end: Latest instant of interest
            scale: Bucket size of the series

        Returns:
            ``start`` when nothing is stored yet, otherwise the bucket after the
            newest stored sample. Never earlier than ``start``.
        """
        window = int((end - start).total_seconds())
        q = f"timestamp({metric.selector()}[{window}s])"
        result = await self.store.query(q)

        if isinstance(result, InstantSample):
            logger.debug(f"resume query {q} returned a scalar, starting at {start}")
            return start
        if not result:
            return start
        if len(result) != 1 or len(result[0].samples) != 1:
            logger.debug(f"resume query {q} returned an unexpected shape {result!r}, starting at {start}")
            return start

        last = from_epoch_seconds(result[0].samples[0].value)
        return max(start, last + scale.duration)
