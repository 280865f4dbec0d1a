"""Clients for the two external data sources and parsing of their payloads."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Dict, List, Optional, Protocol

import requests
import structlog

import config
from errors import SourceUnavailable

logger = structlog.get_logger(__name__)


class Source(str, Enum):
    COUNTRIES = "countries"
    EXCHANGE_RATES = "exchange_rates"

    @property
    def label(self) -> str:
        return {
            Source.COUNTRIES: "Countries API",
            Source.EXCHANGE_RATES: "Exchange Rates API",
        }[self]


class SourceClient(Protocol):
    def fetch(self, source: Source) -> bytes: ...


@dataclass(slots=True)
class CountryFact:
    name: str
    capital: Optional[str] = None
    region: Optional[str] = None
    population: int = 0
    currencies: List[str] = field(default_factory=list)
    flag: Optional[str] = None


class HttpSourceClient:
    """Fetch raw source payloads over HTTP with a bounded timeout.

    ``timeout`` bounds each connect and read; the refresher puts a total
    deadline on the whole fetch. A single attempt is made per call.
    Timeouts and other transport or status failures are logged
    differently but both surface as :class:`SourceUnavailable`.
    """

    def __init__(
        self,
        urls: Dict[Source, str] | None = None,
        timeout: float = config.FETCH_TIMEOUT,
    ) -> None:
        self.urls = urls or {
            Source.COUNTRIES: config.COUNTRIES_API,
            Source.EXCHANGE_RATES: config.EXCHANGE_RATE_API,
        }
        self.timeout = timeout

    def fetch(self, source: Source) -> bytes:
        url = self.urls[source]
        log = logger.bind(source=source.value, url=url)
        log.debug("source.fetch.start", timeout=self.timeout)
        try:
            r = requests.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.Timeout as exc:
            log.warning("source.fetch.timeout", timeout=self.timeout)
            raise SourceUnavailable(source, "request timed out") from exc
        except requests.RequestException as exc:
            log.warning("source.fetch.failed", error=str(exc))
            raise SourceUnavailable(source, str(exc)) from exc
        log.info("source.fetch.done", status=r.status_code, size=len(r.content))
        return r.content


def _decode(source: Source, raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except ValueError as exc:
        logger.warning("source.payload.invalid_json", source=source.value)
        raise SourceUnavailable(source, "response is not valid JSON") from exc


def _population(value) -> int:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        return 0
    return max(int(value), 0)


def _currency_codes(currencies) -> List[str]:
    codes = []
    for cur in currencies if isinstance(currencies, list) else []:
        code = cur.get("code") if isinstance(cur, dict) else None
        if isinstance(code, str) and code.strip():
            codes.append(code.strip().upper())
    return codes


def _optional_str(value) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def parse_countries(payload: Any) -> List[CountryFact]:
    """Normalise the countries payload into :class:`CountryFact` values.

    Entries without a usable name are skipped; other malformed fields are
    coerced (missing population -> 0, junk currencies dropped).
    """
    if not isinstance(payload, list):
        raise SourceUnavailable(Source.COUNTRIES, "payload is not a list")

    facts = []
    skipped = 0
    for c in payload:
        name = c.get("name") if isinstance(c, dict) else None
        if not isinstance(name, str) or not name.strip():
            skipped += 1
            continue
        facts.append(
            CountryFact(
                name=name.strip(),
                capital=_optional_str(c.get("capital")),
                region=_optional_str(c.get("region")),
                population=_population(c.get("population")),
                currencies=_currency_codes(c.get("currencies")),
                flag=_optional_str(c.get("flag")),
            )
        )
    if skipped:
        logger.warning("source.countries.skipped", count=skipped)
    return facts


def parse_exchange_rates(payload: Any) -> Dict[str, float]:
    rates = payload.get("rates") if isinstance(payload, dict) else None
    if not isinstance(rates, dict):
        raise SourceUnavailable(Source.EXCHANGE_RATES, "exchange rates payload invalid")

    table = {}
    for code, rate in rates.items():
        if isinstance(rate, bool) or not isinstance(rate, Real) or not math.isfinite(rate) or rate <= 0:
            continue
        table[str(code).upper()] = float(rate)
    return table


def fetch_countries(client: SourceClient) -> List[CountryFact]:
    raw = client.fetch(Source.COUNTRIES)
    return parse_countries(_decode(Source.COUNTRIES, raw))


def fetch_exchange_rates(client: SourceClient) -> Dict[str, float]:
    raw = client.fetch(Source.EXCHANGE_RATES)
    return parse_exchange_rates(_decode(Source.EXCHANGE_RATES, raw))
