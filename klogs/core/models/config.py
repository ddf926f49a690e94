from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import pydantic as pd
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console
from rich.logging import RichHandler

from klogs.core.filtering import PodFilter

logger = logging.getLogger("klogs")


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="KLOGS_")

    quiet: bool = pd.Field(False)
    verbose: bool = pd.Field(False)

    # Filter Settings
    pod_name: Optional[str] = pd.Field(None)
    labels: list[str] = pd.Field(default_factory=list)

    # Kubernetes Settings
    all_namespaces: bool = pd.Field(False)
    all_contexts: bool = pd.Field(False)
    kubeconfig: Optional[str] = pd.Field(None)

    # Logging Settings
    log_to_stderr: bool = pd.Field(False)
    width: Optional[int] = pd.Field(None, ge=1)

    _logging_console: Optional[Console] = pd.PrivateAttr(None)
    _output_console: Optional[Console] = pd.PrivateAttr(None)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

    @pd.field_validator("pod_name")
    @classmethod
    def validate_pod_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None

        v = v.strip()
        return v or None

    @pd.field_validator("labels", mode="before")
    @classmethod
    def validate_labels(cls, v: Optional[list[str]]) -> list[str]:
        if v is None:
            return []

        # NOTE: dict.fromkeys keeps the first occurrence order
        return list(dict.fromkeys(token.strip() for token in v if token.strip()))

    @property
    def pod_filter(self) -> PodFilter:
        return PodFilter(
            name=self.pod_name,
            labels=tuple(self.labels),
            all_namespaces=self.all_namespaces,
            all_contexts=self.all_contexts,
        )

    @property
    def description(self) -> str:
        if self.pod_name is None and not self.labels:
            message = "Logging every pods"
        elif not self.labels:
            message = f"Logging pods with name containing '{self.pod_name}'"
        elif self.pod_name is None:
            message = f"Logging pods with labels {self.labels}"
        else:
            message = f"Logging pods with name containing '{self.pod_name}' and labels {self.labels}"

        if self.all_namespaces:
            message += " in all namespaces"
        if self.all_contexts:
            message += " in all contexts"
        return message

    @property
    def logging_console(self) -> Console:
        if getattr(self, "_logging_console") is None:
            self._logging_console = Console(file=sys.stderr if self.log_to_stderr else sys.stdout, width=self.width)
        return self._logging_console

    @property
    def output_console(self) -> Console:
        if getattr(self, "_output_console") is None:
            self._output_console = Console(file=sys.stdout, width=self.width)
        return self._output_console

    @staticmethod
    def set_config(config: Config) -> None:
        global _config

        _config = config
        logging.basicConfig(
            level="NOTSET",
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=config.logging_console)],
        )
        logging.getLogger("").setLevel(logging.CRITICAL)
        logger.setLevel(logging.DEBUG if config.verbose else logging.CRITICAL if config.quiet else logging.INFO)

    @staticmethod
    def get_config() -> Optional[Config]:
        return _config


# NOTE: This class is just a proxy for _config.
# Import settings from this module and use it like it is just a config object.
class _Settings:
    def __getattr__(self, name: str):
        if _config is None:
            raise AttributeError("Config is not set")

        return getattr(_config, name)


_config: Optional[Config] = None
settings = _Settings()
