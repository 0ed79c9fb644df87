# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Azure Key Vault config source."""

import os
import threading
from typing import Any, Optional

from .exceptions import ConfigSourceNotFoundError, RetrieveError
from .logger import Logger
from .logger_factory import create_logger
from .source import ConfigSource, Retrieved, WatchFunc

_logger = create_logger(name="copilot_config_sources.azurekeyvault")


def vault_url_from(vault_url: str | None = None, vault_name: str | None = None) -> str:
    """Pick the vault URL: vault_url, AZURE_KEY_VAULT_URI, vault_name, AZURE_KEY_VAULT_NAME.

    Raises:
        RetrieveError: If none of them is set
    """
    for candidate in (vault_url, os.getenv("AZURE_KEY_VAULT_URI")):
        if candidate:
            return candidate
    name = vault_name or os.getenv("AZURE_KEY_VAULT_NAME")
    if name:
        return f"https://{name}.vault.azure.net/"

    raise RetrieveError(
        "Azure Key Vault URL not configured. Provide vault_url or vault_name, or set "
        "AZURE_KEY_VAULT_URI or AZURE_KEY_VAULT_NAME environment variable"
    )


class AzureKeyVaultConfigSource(ConfigSource):
    """Config source that retrieves secrets from Azure Key Vault.

    Authentication goes through DefaultAzureCredential (managed identity,
    AZURE_CLIENT_ID/AZURE_CLIENT_SECRET/AZURE_TENANT_ID, or Azure CLI).
    With ``watch_interval`` set, each retrieved secret that is not pinned to
    a version is polled and reports a change once a new version appears::

        config_sources:
          azurekeyvault/prod:
            vault_name: my-production-vault
            watch_interval: 300
        message_bus:
          password: ${azurekeyvault/prod:rabbitmq-password}
          api_key: ${azurekeyvault/prod:api-key?version=0f3c2a}

    Attributes:
        vault_url: Azure Key Vault URL
        watch_interval: Seconds between version checks, or None to not watch
        client: SecretClient used for every retrieval
    """

    def __init__(
        self,
        vault_url: str | None = None,
        vault_name: str | None = None,
        watch_interval: float | None = None,
        logger: Optional[Logger] = None,
    ):
        """Create the secret client.

        Raises:
            RetrieveError: If the Azure SDK is missing, no vault is configured,
                or the client cannot be created
        """
        try:
            from azure.core.exceptions import AzureError, ClientAuthenticationError
            from azure.identity import DefaultAzureCredential
            from azure.keyvault.secrets import SecretClient
        except ImportError as e:
            raise RetrieveError(
                "Azure SDK dependencies for Azure Key Vault are not installed. "
                "Install with: pip install copilot-config-sources[azure]"
            ) from e

        self.vault_url = vault_url_from(vault_url, vault_name)
        self.watch_interval = watch_interval
        self._logger = logger or _logger

        try:
            self._credential = DefaultAzureCredential()
            self.client = SecretClient(vault_url=self.vault_url, credential=self._credential)
        except ClientAuthenticationError as e:
            raise RetrieveError(f"Failed to authenticate with Azure Key Vault: {e}") from e
        except ValueError as e:
            raise RetrieveError(f"Invalid Azure Key Vault URL '{self.vault_url}': {e}") from e
        except AzureError as e:
            raise RetrieveError(f"Azure Key Vault client error: {e}") from e

        self._logger.info(
            "Initialized Azure Key Vault config source",
            vault_url=self.vault_url,
            watch_interval=watch_interval,
        )

    def retrieve(self, selector: str, params: Optional[dict[str, Any]] = None) -> Retrieved:
        """Retrieve a secret by name.

        Args:
            selector: Name of the secret in Key Vault
            params: Optional ``version``; latest if omitted

        Raises:
            ConfigSourceNotFoundError: If the secret does not exist or has no value
            RetrieveError: If Key Vault returns any other error
        """
        version = params.get("version") if params else None
        secret = self._get_secret(selector, str(version) if version else None)
        if secret.value is None:
            raise ConfigSourceNotFoundError(f"Key '{selector}' has no value")

        watch = None
        if self.watch_interval and not version:
            watch = self._watch_secret(selector, secret.properties.version)
        return Retrieved(value=secret.value, watch=watch)

    def _get_secret(self, selector: str, version: str | None):
        from azure.core.exceptions import AzureError, ResourceNotFoundError

        try:
            if version:
                return self.client.get_secret(selector, version=version)
            return self.client.get_secret(selector)
        except ResourceNotFoundError as e:
            raise ConfigSourceNotFoundError(f"Key not found: {selector}") from e
        except AzureError as e:
            raise RetrieveError(f"Failed to retrieve key '{selector}': {e}") from e

    def _watch_secret(self, selector: str, version: str | None) -> WatchFunc:
        def watch(stop: threading.Event) -> Optional[Exception]:
            while not stop.wait(self.watch_interval):
                try:
                    current = self._get_secret(selector, None)
                except RetrieveError as e:
                    return e
                if current.properties.version != version:
                    return None
            return None

        return watch

    def close(self) -> None:
        """Close the secret client, then the credential."""
        for resource in (getattr(self, "client", None), getattr(self, "_credential", None)):
            close_method = getattr(resource, "close", None)
            if callable(close_method):
                close_method()
