"""Merge country facts with exchange rates into upsert-ready records."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from service import CountryFact

MULTIPLIER_MIN = 1000
MULTIPLIER_MAX = 2000


def default_multiplier() -> int:
    return random.randint(MULTIPLIER_MIN, MULTIPLIER_MAX)


@dataclass(slots=True)
class ReconciledCountry:
    name: str
    capital: Optional[str]
    region: Optional[str]
    population: int
    currency_code: Optional[str]
    exchange_rate: Optional[float]
    estimated_gdp: Optional[float]
    flag_url: Optional[str]
    last_refreshed_at: datetime

    def as_row(self) -> dict:
        return {
            "name": self.name,
            "capital": self.capital,
            "region": self.region,
            "population": self.population,
            "currency_code": self.currency_code,
            "exchange_rate": self.exchange_rate,
            "estimated_gdp": self.estimated_gdp,
            "flag_url": self.flag_url,
            "last_refreshed_at": self.last_refreshed_at,
        }


def estimate_gdp(population, currency_code, exchange_rate, multiplier):
    """Return the estimated GDP for one country.

    No currency at all gives 0; a currency without a usable rate gives None.
    """
    if currency_code is None:
        return 0
    if not exchange_rate:
        return None
    return population * multiplier / exchange_rate


def reconcile(
    facts: Iterable[CountryFact],
    rates: Dict[str, float],
    refreshed_at: datetime,
    multiplier: Callable[[], float] = default_multiplier,
) -> List[ReconciledCountry]:
    records = []
    for fact in facts:
        currency_code = fact.currencies[0] if fact.currencies else None
        exchange_rate = rates.get(currency_code) if currency_code else None
        if not exchange_rate:
            exchange_rate = None
        gdp = estimate_gdp(fact.population, currency_code, exchange_rate, multiplier())
        records.append(
            ReconciledCountry(
                name=fact.name,
                capital=fact.capital,
                region=fact.region,
                population=fact.population,
                currency_code=currency_code,
                exchange_rate=exchange_rate,
                estimated_gdp=gdp,
                flag_url=fact.flag,
                last_refreshed_at=refreshed_at,
            )
        )
    return records
