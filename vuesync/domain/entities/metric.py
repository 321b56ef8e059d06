"""VictoriaMetrics series entities and their JSON wire formats.

Two encodings are supported and deliberately kept on separate types:

* ``Series`` is one line of the ``/api/v1/import`` JSON-line format: a metric,
  a ``values`` column and a ``timestamps`` column in epoch milliseconds.
* ``InstantSample`` is the ``[<epoch seconds>, "<value>"]`` pair returned by
  ``/api/v1/query``.
"""
import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from vuesync.core.exceptions import CodecError

NAME_LABEL = "__name__"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def _as_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts


def to_epoch_millis(ts: datetime) -> int:
    """Epoch milliseconds of an aware datetime (naive values are taken as UTC)."""
    return (_as_utc(ts) - EPOCH) // _ONE_MS


def from_epoch_millis(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def from_epoch_seconds(seconds: float) -> datetime:
    return EPOCH + timedelta(seconds=int(seconds))


@dataclass
class Metric:
    """Series identity: a metric name plus labels."""

    name: str
    labels: Optional[Dict[str, str]] = None

    def __post_init__(self):
        if not self.labels:
            self.labels = None
        elif NAME_LABEL in self.labels:
            raise ValueError(f"label {NAME_LABEL!r} is reserved for the metric name")

    def to_dict(self) -> Dict[str, str]:
        doc = {NAME_LABEL: self.name}
        if self.labels:
            doc.update(self.labels)
        return doc

    @classmethod
    def from_dict(cls, doc: Any) -> "Metric":
        if not isinstance(doc, dict):
            raise CodecError(f"metric: expected an object, got {doc!r}")
        labels = {}
        for key, value in doc.items():
            if not isinstance(value, str):
                raise CodecError(f"metric: label {key!r} is not a string: {value!r}")
            labels[key] = value
        name = labels.pop(NAME_LABEL, "")
        return cls(name=name, labels=labels or None)

    def selector(self) -> str:
        """PromQL/MetricsQL selector matching exactly this metric."""
        if not self.labels:
            return self.name
        matchers = ",".join(f"{k}={json.dumps(v)}" for k, v in sorted(self.labels.items()))
        return f"{self.name}{{{matchers}}}"


@dataclass
class Sample:
    value: float
    timestamp: datetime


@dataclass
class Series:
    """A metric with its samples, in insertion order."""

    metric: Metric
    samples: List[Sample] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"metric": self.metric.to_dict()}
        if self.samples:
            doc["values"] = [float(s.value) for s in self.samples]
            doc["timestamps"] = [to_epoch_millis(s.timestamp) for s in self.samples]
        return doc

    def to_json(self) -> str:
        """Single-line import document."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def __str__(self) -> str:
        return self.to_json()

    @classmethod
    def from_dict(cls, doc: Any) -> "Series":
        if not isinstance(doc, dict):
            raise CodecError(f"series: expected an object, got {doc!r}")
        if "metric" not in doc:
            raise CodecError("series: missing 'metric'")
        metric = Metric.from_dict(doc["metric"])

        values = doc.get("values") or []
        timestamps = doc.get("timestamps") or []
        if not isinstance(values, list) or not isinstance(timestamps, list):
            raise CodecError("series: 'values' and 'timestamps' must be arrays")
        if len(values) != len(timestamps):
            raise CodecError(
                f"series {metric.name!r}: {len(values)} values but {len(timestamps)} timestamps"
            )

        samples = []
        for value, ts in zip(values, timestamps):
            if not _is_number(value) or not _is_timestamp(ts):
                raise CodecError(f"series {metric.name!r}: non-numeric sample {[value, ts]!r}")
            samples.append(Sample(value=float(value), timestamp=from_epoch_millis(int(ts))))
        return cls(metric=metric, samples=samples)

    @classmethod
    def from_json(cls, line: str) -> "Series":
        try:
            doc = json.loads(line)
        except json.JSONDecodeError as e:
            raise CodecError(f"series: invalid JSON: {e}") from e
        return cls.from_dict(doc)


@dataclass
class InstantSample:
    """A single query result value: ``[<epoch seconds>, "<value>"]``."""

    value: float
    timestamp: datetime

    def to_list(self) -> List[Any]:
        seconds = (_as_utc(self.timestamp) - EPOCH) // timedelta(seconds=1)
        return [seconds, format_value(self.value)]

    def to_json(self) -> str:
        return json.dumps(self.to_list(), separators=(",", ":"))

    def to_sample(self) -> Sample:
        return Sample(value=self.value, timestamp=self.timestamp)

    @classmethod
    def from_list(cls, doc: Any) -> "InstantSample":
        if not isinstance(doc, list) or len(doc) != 2:
            raise CodecError(f"sample: expected array of len=2, got {doc!r}")
        ts, raw = doc
        if not _is_timestamp(ts):
            raise CodecError(f"sample timestamp was not a number: {doc!r}")
        if not isinstance(raw, str):
            raise CodecError(f"sample value was not a string: {doc!r}")
        try:
            value = parse_value(raw)
        except ValueError:
            raise CodecError(f"sample value was not a float: {doc!r}") from None
        return cls(value=value, timestamp=from_epoch_seconds(ts))

    @classmethod
    def from_json(cls, data: str) -> "InstantSample":
        try:
            doc = json.loads(data)
        except json.JSONDecodeError as e:
            raise CodecError(f"sample: invalid JSON: {e}") from e
        return cls.from_list(doc)


def parse_value(raw: str) -> float:
    """Parse a sample value string, rejecting padding and digit separators."""
    if raw != raw.strip() or "_" in raw:
        raise ValueError(f"invalid float literal: {raw!r}")
    return float(raw)


def format_value(value: float) -> str:
    """Format a float the way Prometheus-compatible APIs spell sample values."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_timestamp(value: Any) -> bool:
    return _is_number(value) and math.isfinite(value)
