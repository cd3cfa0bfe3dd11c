"""Shared fixtures: deterministic DNS and captured warnings."""

import pytest

from sshbook.hostname import HostnameCanonicalizer
from sshbook.store import ConfigStore


class FakeResolver:
    """Resolves names from a fixed table and records every lookup."""

    def __init__(self, records: dict[str, str] | None = None):
        self.records = records or {}
        self.calls: list[str] = []

    def __call__(self, hostname: str) -> str | None:
        self.calls.append(hostname)
        return self.records.get(hostname)


class RecordingReporter:
    def __init__(self):
        self.logs: list[str] = []
        self.warnings: list[str] = []

    def log(self, message: str) -> None:
        self.logs.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


@pytest.fixture(autouse=True)
def no_real_dns(monkeypatch):
    """Never hit the network: unknown names fail to resolve."""
    monkeypatch.setattr("sshbook.hostname.resolve_a_record", lambda hostname: None)


@pytest.fixture
def resolver():
    return FakeResolver({"example.com": "93.184.216.34", "web.example.com": "10.0.0.5"})


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def make_store(resolver, reporter):
    """Factory for stores sharing the fake resolver and reporter."""

    def factory(data: dict | None = None) -> ConfigStore:
        store = ConfigStore(reporter=reporter, canonicalizer=HostnameCanonicalizer(resolver))
        if data is not None:
            store.load_dict(data)
        return store

    return factory
