"""Shared fixtures: a throwaway SQLite store and canned source payloads."""

from __future__ import annotations

import json
import os

# keep the app module's default engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest

from db import init_db, make_engine, make_session_factory
from errors import SourceUnavailable
from schema import Base
from service import Source
from store import CountryStore


COUNTRIES = [
    {
        "name": "Ecuador",
        "capital": "Quito",
        "region": "Americas",
        "population": 1000,
        "currencies": [{"code": "USD", "name": "United States dollar", "symbol": "$"}],
        "flag": "f",
    },
    {
        "name": "Nigeria",
        "capital": "Abuja",
        "region": "Africa",
        "population": 206139587,
        "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
        "flag": "https://flagcdn.com/ng.svg",
    },
    {
        "name": "Antarctica",
        "region": "Polar",
        "population": 1000,
        "flag": "https://flagcdn.com/aq.svg",
    },
    {
        "name": "Atlantis",
        "capital": "Poseidonia",
        "region": "Europe",
        "population": 500,
        "currencies": [{"code": "ATL"}],
    },
]

RATES = {"result": "success", "base_code": "USD", "rates": {"USD": 1, "NGN": 1600.5, "EUR": 0.92}}


class FakeSourceClient:
    """Serve canned payloads; ``failures`` maps a source to the reason it fails."""

    def __init__(self, countries=None, rates=None, failures=None):
        self.payloads = {
            Source.COUNTRIES: json.dumps(COUNTRIES if countries is None else countries).encode(),
            Source.EXCHANGE_RATES: json.dumps(RATES if rates is None else rates).encode(),
        }
        self.failures = failures or {}
        self.calls = []

    def fetch(self, source):
        self.calls.append(source)
        if source in self.failures:
            raise SourceUnavailable(source, self.failures[source])
        return self.payloads[source]


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'countries.db'}")
    init_db(Base, bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory):
    return CountryStore(session_factory)


@pytest.fixture
def fake_client():
    return FakeSourceClient()


@pytest.fixture
def make_client():
    return FakeSourceClient
