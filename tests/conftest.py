# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Test fixtures for copilot_config_sources."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import yaml

from copilot_config_sources import SilentLogger

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def silent_logger() -> SilentLogger:
    """Logger capturing entries in memory."""
    return SilentLogger(level="DEBUG", name="test")


@pytest.fixture
def load_testdata():
    """Load a YAML document from tests/testdata by base name."""

    def _load(name: str) -> dict:
        with open(TESTDATA / f"{name}.yaml", encoding="utf-8") as f:
            return yaml.safe_load(f)

    return _load


@dataclass(frozen=True)
class AzureSdkMocks:
    """Per-test Azure SDK mocks.

    We patch `sys.modules` so `AzureKeyVaultConfigSource` can import Azure SDK
    symbols without requiring Azure dependencies to be installed.
    """

    secret_client_cls: MagicMock
    default_credential_cls: MagicMock
    ResourceNotFoundError: type[Exception]
    ClientAuthenticationError: type[Exception]
    AzureError: type[Exception]


@pytest.fixture
def azure_sdk_mocks(monkeypatch: pytest.MonkeyPatch) -> AzureSdkMocks:
    """Provide per-test Azure SDK module mocks via `sys.modules`."""

    secret_client_cls = MagicMock(name="SecretClient")
    default_credential_cls = MagicMock(name="DefaultAzureCredential")

    azure_error = type("AzureError", (Exception,), {})
    resource_not_found_error = type("ResourceNotFoundError", (azure_error,), {})
    client_auth_error = type("ClientAuthenticationError", (azure_error,), {})

    monkeypatch.setitem(sys.modules, "azure", MagicMock())
    monkeypatch.setitem(sys.modules, "azure.keyvault", MagicMock())
    monkeypatch.setitem(sys.modules, "azure.core", MagicMock())
    monkeypatch.setitem(
        sys.modules,
        "azure.keyvault.secrets",
        MagicMock(SecretClient=secret_client_cls),
    )
    monkeypatch.setitem(
        sys.modules,
        "azure.identity",
        MagicMock(DefaultAzureCredential=default_credential_cls),
    )
    monkeypatch.setitem(
        sys.modules,
        "azure.core.exceptions",
        MagicMock(
            ResourceNotFoundError=resource_not_found_error,
            ClientAuthenticationError=client_auth_error,
            AzureError=azure_error,
        ),
    )

    return AzureSdkMocks(
        secret_client_cls=secret_client_cls,
        default_credential_cls=default_credential_cls,
        ResourceNotFoundError=resource_not_found_error,
        ClientAuthenticationError=client_auth_error,
        AzureError=azure_error,
    )
