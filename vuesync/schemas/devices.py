"""Payloads of the Emporia Vue customer and AppAPI endpoints."""
from datetime import datetime
from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _VueModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Channel(_VueModel):
    device_gid: int = Field(..., alias="deviceGid")
    channel_num: str = Field(..., alias="channelNum")  # "1,2,3", "1", "Balance"
    name: Optional[str] = None
    channel_multiplier: float = Field(1.0, alias="channelMultiplier")

    @field_validator("channel_multiplier", mode="before")
    @classmethod
    def _multiplier_default(cls, v):
        return 1.0 if v is None else v


class Device(_VueModel):
    device_gid: int = Field(..., alias="deviceGid")
    model: Optional[str] = None
    channels: List[Channel] = Field(default_factory=list)
    devices: List["Device"] = Field(default_factory=list)

    @field_validator("channels", "devices", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return [] if v is None else v

    def iter_channels(self) -> Iterator[Channel]:
        """Own channels first, then those of every nested device."""
        yield from self.channels
        for nested in self.devices:
            yield from nested.iter_channels()


class ChannelUsage(_VueModel):
    name: Optional[str] = None
    usage: Optional[float] = None
    channel_num: str = Field(..., alias="channelNum")
    nested_devices: List["DeviceUsage"] = Field(default_factory=list, alias="nestedDevices")

    @field_validator("nested_devices", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return [] if v is None else v


class DeviceUsage(_VueModel):
    device_gid: int = Field(..., alias="deviceGid")
    channel_usages: List[ChannelUsage] = Field(default_factory=list, alias="channelUsages")


class DeviceListUsages(_VueModel):
    instant: datetime
    scale: Optional[str] = None
    devices: List[DeviceUsage] = Field(default_factory=list)


class ChartUsage(_VueModel):
    """One getChartUsage page, or several pages stitched together.

    ``usage_list[i]`` is the bucket starting at ``first_usage_instant + i * scale``;
    ``None`` means the bucket has no data.
    """

    first_usage_instant: Optional[datetime] = Field(None, alias="firstUsageInstant")
    usage_list: List[Optional[float]] = Field(default_factory=list, alias="usageList")

    @field_validator("usage_list", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return [] if v is None else v


Device.model_rebuild()
ChannelUsage.model_rebuild()
