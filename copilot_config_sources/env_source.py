# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Environment-backed config source."""

import os
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigSourceNotFoundError
from .source import ConfigSource, Retrieved


class EnvConfigSource(ConfigSource):
    """Config source that reads environment variables.

    Unlike a bare ``$VAR`` reference, a missing variable is an error unless
    a default is configured for it or passed as the ``default`` parameter::

        config_sources:
          env:
            defaults:
              LOG_LEVEL: INFO
        service:
          log_level: $env:LOG_LEVEL
          region: ${env:REGION?default=westus}
    """

    def __init__(
        self,
        defaults: Optional[Dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._defaults = dict(defaults or {})
        self._environ = environ if environ is not None else os.environ

    def retrieve(self, selector: str, params: Optional[dict[str, Any]] = None) -> Retrieved:
        value = self._environ.get(selector)
        if value is not None:
            return Retrieved(value=value)

        if params and "default" in params:
            return Retrieved(value=params["default"])
        if selector in self._defaults:
            return Retrieved(value=self._defaults[selector])

        raise ConfigSourceNotFoundError(f"Environment variable not set: {selector}")
