from datetime import datetime, timedelta, timezone

import pytest

from vuesync.core.exceptions import StoreQueryError
from vuesync.domain.entities.metric import InstantSample, Metric, Sample, Series
from vuesync.domain.entities.scale import Scale
from vuesync.domain.services.resume_service import ResumePointResolver

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
END = START + timedelta(days=10)
METRIC = Metric("vue_kwh", {"dev_gid": "1", "chan": "1,2,3", "scale": "1MIN"})


class FakeStore:
    def __init__(self, result=None, error=None):
        self.result = [] if result is None else result
        self.error = error
        self.queries = []

    async def query(self, q):
        self.queries.append(q)
        if self.error:
            raise self.error
        return self.result


def _last_seen(ts: datetime) -> Series:
    return Series(Metric("", {"dev_gid": "1"}), [Sample(ts.timestamp(), END)])


@pytest.mark.asyncio
async def test_query_covers_the_whole_window():
    store = FakeStore()

    await ResumePointResolver(store).resolve(METRIC, START, END, Scale.ONE_MINUTE)

    assert store.queries == ['timestamp(vue_kwh{chan="1,2,3",dev_gid="1",scale="1MIN"}[864000s])']


@pytest.mark.asyncio
async def test_no_series_starts_at_the_beginning():
    resolved = await ResumePointResolver(FakeStore([])).resolve(METRIC, START, END, Scale.ONE_MINUTE)

    assert resolved == START


@pytest.mark.asyncio
async def test_resumes_one_bucket_after_last_sample():
    last = START + timedelta(days=3, minutes=7)
    store = FakeStore([_last_seen(last)])

    resolved = await ResumePointResolver(store).resolve(METRIC, START, END, Scale.ONE_MINUTE)

    assert resolved == last + timedelta(minutes=1)


@pytest.mark.asyncio
async def test_never_earlier_than_start():
    store = FakeStore([_last_seen(START - timedelta(days=2))])

    resolved = await ResumePointResolver(store).resolve(METRIC, START, END, Scale.ONE_HOUR)

    assert resolved == START


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "result",
    [
        [_last_seen(START + timedelta(days=1)), _last_seen(START + timedelta(days=2))],
        [Series(METRIC, [Sample(1.0, START), Sample(2.0, START)])],
        [Series(METRIC, [])],
        InstantSample(value=1704067200.0, timestamp=START),
    ],
)
async def test_ambiguous_results_fall_back_to_start(result):
    resolved = await ResumePointResolver(FakeStore(result)).resolve(METRIC, START, END, Scale.ONE_MINUTE)

    assert resolved == START


@pytest.mark.asyncio
async def test_store_errors_propagate():
    store = FakeStore(error=StoreQueryError("result type unsupported: 'matrix'"))

    with pytest.raises(StoreQueryError):
        await ResumePointResolver(store).resolve(METRIC, START, END, Scale.ONE_MINUTE)
