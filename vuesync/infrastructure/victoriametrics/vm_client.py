"""VictoriaMetrics client that can run simple queries and push data."""
import asyncio
import logging
import zlib
from typing import Any, AsyncIterator, List, Optional, Union

import httpx

from vuesync.core.exceptions import CodecError, StoreQueryError, StoreRequestError
from vuesync.domain.entities.metric import InstantSample, Metric, Series
from vuesync.infrastructure.base_client import BaseApiClient

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/v1/query"
IMPORT_PATH = "/api/v1/import"

# https://prometheus.io/docs/prometheus/latest/querying/api/#expression-query-result-formats
RESULT_TYPE_MATRIX = "matrix"
RESULT_TYPE_VECTOR = "vector"
RESULT_TYPE_SCALAR = "scalar"
RESULT_TYPE_STRING = "string"

QueryResult = Union[InstantSample, List[Series]]


def dest_to_base_url(dest: str) -> str:
    """Accept either host:port or a full URL."""
    if "://" in dest:
        return dest
    return f"http://{dest}"


class VictoriaMetricsClient(BaseApiClient):
    """Client for the VictoriaMetrics query and JSON-line import APIs."""

    def __init__(self, dest: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        super().__init__(dest_to_base_url(dest), client=client, timeout=timeout)

    def _error(self, message: str, **context: Any) -> Exception:
        return StoreRequestError(message, **context)

    async def query(self, q: str) -> QueryResult:
        """
        Run an instant query.

        Returns:
            InstantSample for scalar results, one single-sample Series per
            element for vector results

        Raises:
            StoreQueryError: For matrix, string or unknown result types
            StoreRequestError: If the request fails
            CodecError: If a sample cannot be decoded
        """
        response = await self._make_request("GET", QUERY_PATH, params={"query": q})
        body = self._decode_json(response, QUERY_PATH)
        try:
            result_type = body["data"]["resultType"]
            result = body["data"]["result"]
        except (KeyError, TypeError) as e:
            raise StoreQueryError(f"query {q!r}: malformed response: {body!r}", endpoint=QUERY_PATH) from e
        logger.debug(f"result is {result_type} {result!r}")

        if result_type == RESULT_TYPE_SCALAR:
            return InstantSample.from_list(result)
        if result_type == RESULT_TYPE_VECTOR:
            if not isinstance(result, list):
                raise CodecError(f"vector result is not an array: {result!r}")
            out = []
            for r in result:
                if not isinstance(r, dict) or "value" not in r:
                    raise CodecError(f"vector element is not an object with a value: {r!r}")
                sample = InstantSample.from_list(r["value"]).to_sample()
                out.append(Series(metric=Metric.from_dict(r.get("metric") or {}), samples=[sample]))
            return out
        raise StoreQueryError(
            f"result type unsupported: {result_type!r} {result!r}", endpoint=QUERY_PATH
        )

    def push(self) -> "SeriesPusher":
        """Open a streaming import; use as ``async with client.push() as pusher``."""
        return SeriesPusher(self.client, self._url(IMPORT_PATH))


class SeriesPusher:
    """
    One gzip-compressed ``/api/v1/import`` request fed a line at a time.

    The request is started on entry and completed by :meth:`close`, which
    waits for VictoriaMetrics to acknowledge everything pushed. Each
    :meth:`push` returns only once the request body has taken the series, so
    at most one compressed batch is held in memory.
    """

    def __init__(self, client: httpx.AsyncClient, url: str):
        self._client = client
        self._url = url
        self._queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue(maxsize=1)
        self._gzip = zlib.compressobj(wbits=31)
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.pushed = 0

    async def __aenter__(self) -> "SeriesPusher":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.close()
            return
        # Keep what was already pushed; the error raised in the block takes precedence.
        try:
            await self.close()
        except Exception as close_error:
            logger.warning(f"Import close failed while handling {exc_type.__name__}: {close_error}")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._upload())

    async def _body(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            try:
                if chunk is None:
                    return
                yield chunk
            finally:
                # Reached when the request asks for the next chunk.
                self._queue.task_done()

    async def _upload(self) -> httpx.Response:
        return await self._client.post(
            self._url,
            content=self._body(),
            headers={"Content-Encoding": "gzip", "Content-Type": "application/json"},
        )

    async def _deliver(self, item: Optional[bytes]) -> None:
        await self._queue.put(item)
        await self._queue.join()

    async def _send(self, item: Optional[bytes]) -> bool:
        """Hand one item to the request body; False if the request ended first."""
        delivered = asyncio.ensure_future(self._deliver(item))
        try:
            await asyncio.wait({delivered, self._task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not delivered.done():
                delivered.cancel()
        return delivered.done() and not delivered.cancelled()

    async def push(self, series: Series) -> None:
        """Write one series as a JSON line and wait until the request takes it."""
        if self._closed:
            raise StoreRequestError("push on a closed import", endpoint=IMPORT_PATH)
        self.start()

        line = series.to_json().encode("utf-8") + b"\n"
        chunk = self._gzip.compress(line) + self._gzip.flush(zlib.Z_SYNC_FLUSH)
        if self._task.done() or not await self._send(chunk):
            await self.close()
            raise StoreRequestError("import request finished before all series were pushed", endpoint=IMPORT_PATH)
        self.pushed += 1
        logger.debug(f"Pushed {len(series.samples)} samples of {series.metric.name}")

    async def close(self) -> None:
        """Finish the upload and raise if VictoriaMetrics rejected it."""
        if self._closed:
            return
        self._closed = True
        self.start()
        if not self._task.done():
            tail = self._gzip.flush()
            if not tail or await self._send(tail):
                await self._send(None)

        try:
            response = await self._task
        except httpx.HTTPError as e:
            raise StoreRequestError(f"POST {IMPORT_PATH}: {e}", endpoint=IMPORT_PATH) from e
        if response.status_code >= 400:
            body = response.text
            logger.error(f"request failed ({response.status_code}); response:\n{body}")
            raise StoreRequestError(
                f"POST {IMPORT_PATH} failed with status {response.status_code}: {body}",
                endpoint=IMPORT_PATH,
                status_code=response.status_code,
                body=body,
            )
        logger.debug(f"Import of {self.pushed} series acknowledged ({response.status_code})")
