"""Shared pytest fixtures for cafsample tests.

Every test runs in its own temporary working directory so the default
``keys`` directory, ``.env`` lookups and log files never touch the checkout.
The fixtures build the local sandbox stack bottom-up: key store, token
service, member, flow and web application.
"""

import os
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cafsample.bootstrap import create_member
from cafsample.config import FundsConfig, MemberConfig, clear_settings_cache
from cafsample.flows import FundsConfirmationFlow
from cafsample.keystore import FileSystemKeyStore
from cafsample.sdk.local import LocalMember, LocalTokenService
from cafsample.web.app import create_app


@pytest.fixture(autouse=True)
def isolated_workdir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Run each test from an empty directory with a clean settings cache."""
    for name in [n for n in os.environ if n.startswith("CAFSAMPLE_")]:
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield tmp_path
    clear_settings_cache()


@pytest.fixture
def keystore(tmp_path: Path) -> FileSystemKeyStore:
    """Key store rooted in the test's temporary directory."""
    store = FileSystemKeyStore(tmp_path / "keys")
    store.ensure()
    return store


@pytest.fixture
def sandbox(keystore: FileSystemKeyStore) -> LocalTokenService:
    """Local token service with the default balance of 100.00 GBP."""
    return LocalTokenService(keystore)


@pytest.fixture
def member(sandbox: LocalTokenService) -> LocalMember:
    """Freshly created CBPII member."""
    created = create_member(sandbox, MemberConfig())
    assert isinstance(created, LocalMember)
    return created


@pytest.fixture
def flow(sandbox: LocalTokenService, member: LocalMember) -> FundsConfirmationFlow:
    """Funds confirmation flow using the default account and amount."""
    return FundsConfirmationFlow(sandbox, member, FundsConfig())


@pytest.fixture
def web_app(
    flow: FundsConfirmationFlow, member: LocalMember, sandbox: LocalTokenService
) -> FastAPI:
    """Web application wired to the local sandbox."""
    return create_app(flow, alias=member.first_alias().value, sandbox=sandbox)


@pytest.fixture
def client(web_app: FastAPI) -> Generator[TestClient, None, None]:
    """HTTP client for the web application."""
    with TestClient(web_app) as test_client:
        yield test_client
