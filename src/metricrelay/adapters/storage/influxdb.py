"""InfluxDB storage adapter using the 1.x HTTP write API."""

import logging
import math
from collections.abc import Sequence

import httpx

from metricrelay.core.errors import BackendConfigError
from metricrelay.core.models import Point

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


def _escape_measurement(name: str) -> str:
    return name.replace(",", r"\,").replace(" ", r"\ ")


def _escape_tag(value: str) -> str:
    return value.replace(",", r"\,").replace("=", r"\=").replace(" ", r"\ ")


def encode_line(point: Point) -> str:
    """Encode a point as one line of InfluxDB line protocol.

    Example:
        ``cpu-0.cpu-user,host=web1 value=12.5 1700000000000``
    """
    measurement = _escape_measurement(point.name)
    tags = f"host={_escape_tag(point.host)}" if point.host else ""
    series = f"{measurement},{tags}" if tags else measurement
    return f"{series} value={float(point.value)!r} {point.timestamp}"


def _base_url(host: str) -> str:
    if not host:
        raise BackendConfigError("InfluxDB host must not be empty")
    if "://" in host:
        return host.rstrip("/")
    return f"http://{host}"


class InfluxDBPointStorage:
    """InfluxDB implementation of PointWriterPort.

    Writes each batch with one POST to /write, millisecond precision, the
    series name as measurement and the host as a tag. Points whose value
    is NaN or infinite are left out because line protocol cannot carry
    them.

    Args:
        host: "host:port" or a full URL of the InfluxDB HTTP API.
        database: Target database.
        username: User for basic credentials, sent as the u parameter.
        password: Password, sent as the p parameter.
        client: Preconfigured httpx.AsyncClient (tests use a MockTransport).
        timeout: Request timeout in seconds when the client is created here.
    """

    def __init__(
        self,
        host: str,
        database: str,
        username: str = "",
        password: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not database:
            raise BackendConfigError("InfluxDB database name is required")
        self._database = database
        self._params = {"db": database, "precision": "ms"}
        if username:
            self._params["u"] = username
            self._params["p"] = password
        self._client = client or httpx.AsyncClient(
            base_url=_base_url(host), timeout=timeout
        )

    async def write_points(self, points: Sequence[Point]) -> None:
        """POST a batch as line protocol.

        Raises:
            httpx.HTTPError: On transport errors or a non-2xx response.
        """
        lines = [encode_line(p) for p in points if math.isfinite(p.value)]
        skipped = len(points) - len(lines)
        if skipped:
            LOG.debug("skipped %d non-finite points", skipped)
        if not lines:
            return
        response = await self._client.post(
            "/write", params=self._params, content="\n".join(lines).encode()
        )
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()
