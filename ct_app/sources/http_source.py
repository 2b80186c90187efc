"""HTTP JSON quote source."""

import json
import math
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote as url_quote
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..errors import DataSourceError, MalformedDataError
from ..utils.time import parse_timestamp, utc_now
from .base import Quote, QuoteSource


class HttpQuoteSource(QuoteSource):
    """
    Fetches quotes from an HTTP endpoint returning JSON.

    The URL template must contain ``{symbol}``. The response body must be an
    object with a positive ``price`` and optionally a ``timestamp``
    (ISO-8601 or epoch ms); without one the receive time is used.
    """

    def __init__(self, name: str, url_template: str, timeout_seconds: float = 5):
        super().__init__(name)

        parsed = urlparse(url_template)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid URL: {url_template}")
        if "{symbol}" not in url_template:
            raise ValueError(f"URL template must contain {{symbol}}: {url_template}")

        self.url_template = url_template
        self.timeout_seconds = timeout_seconds

    def fetch(self, symbol: str) -> Quote:
        """Fetch a quote via HTTP GET."""
        url = self.url_template.format(symbol=url_quote(symbol, safe=""))
        req = Request(url, headers={
            'Accept': 'application/json',
            'User-Agent': 'ct-app/1.0'
        }, method="GET")

        try:
            with urlopen(req, timeout=self.timeout_seconds) as response:
                body = response.read()

        except HTTPError as e:
            self.logger.warning(
                "Quote source HTTP error",
                source=self.name,
                symbol=symbol,
                error_code=e.code,
                error_reason=str(e.reason)
            )
            # Server errors are retryable, client errors are not
            raise DataSourceError(
                f"HTTP {e.code}: {e.reason}",
                source=self.name,
                retryable=e.code >= 500
            ) from e

        except (OSError, URLError, socket.timeout) as e:
            self.logger.warning(
                "Quote source network error",
                source=self.name,
                symbol=symbol,
                error=str(e)
            )
            raise DataSourceError(f"Network error: {e}", source=self.name, retryable=True) from e

        return self._parse_body(symbol, body)

    def _parse_body(self, symbol: str, body: bytes) -> Quote:
        try:
            payload: Any = json.loads(body.decode("utf-8"))
        except UnicodeDecodeError as e:
            raise DataSourceError(f"Body is not UTF-8: {e}", source=self.name, retryable=False) from e
        except json.JSONDecodeError as e:
            raise DataSourceError(f"Invalid JSON: {e}", source=self.name, retryable=False) from e

        if not isinstance(payload, dict):
            raise DataSourceError("Response is not a JSON object", source=self.name, retryable=False)

        price = payload.get("price")
        if isinstance(price, str):
            try:
                price = float(price)
            except ValueError:
                price = None
        if not isinstance(price, (int, float)) or isinstance(price, bool) \
                or not math.isfinite(price) or price <= 0:
            raise DataSourceError(
                f"Invalid price: {payload.get('price')!r}",
                source=self.name,
                retryable=False
            )

        raw_ts = payload.get("timestamp")
        try:
            timestamp = parse_timestamp(raw_ts) if raw_ts is not None else utc_now()
        except MalformedDataError as e:
            raise DataSourceError(str(e), source=self.name, retryable=False) from e

        return Quote(symbol=symbol, price=float(price), timestamp=timestamp, source=self.name)
