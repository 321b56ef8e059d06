"""Export result entities - what one pass wrote for each channel."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class ChannelExportResult:
    """Outcome of exporting the history of a single channel."""

    selector: str
    device_gid: int
    channel_num: str
    name: str
    since: datetime
    until: datetime
    new_samples: int = 0
    batches: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "selector": self.selector,
            "device_gid": self.device_gid,
            "channel_num": self.channel_num,
            "name": self.name,
            "since": self.since.isoformat(),
            "until": self.until.isoformat(),
            "new_samples": self.new_samples,
            "batches": self.batches,
        }


@dataclass
class ExportSummary:
    """All channel results of one export pass."""

    scale: str
    until: datetime
    channels: List[ChannelExportResult] = field(default_factory=list)
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    @property
    def total_new_samples(self) -> int:
        return sum(c.new_samples for c in self.channels)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scale": self.scale,
            "until": self.until.isoformat(),
            "total_new_samples": self.total_new_samples,
            "channels": [c.to_dict() for c in self.channels],
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
