"""Configuration of the on-disk store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable


class NoopLogger(logging.Logger):
    """A logger that discards every message."""

    def __init__(self, name: str = "chainstore.noop") -> None:
        super().__init__(name)
        self.addHandler(logging.NullHandler())
        self.propagate = False
        self.disabled = True


@dataclass
class Config:
    """Configurable parameters of the on-disk store."""

    logger: Any = field(default_factory=NoopLogger)
    db_path: str = "./flowdb"
    truncate: bool = False


Opt = Callable[[Config], None]

DEFAULT_CONFIG = Config()


def with_path(path: str) -> Opt:
    def apply(config: Config) -> None:
        config.db_path = path

    return apply


def with_logger(logger: Any) -> Opt:
    def apply(config: Config) -> None:
        config.logger = logger

    return apply


def with_truncate(truncate: bool) -> Opt:
    def apply(config: Config) -> None:
        config.truncate = truncate

    return apply


def build_config(*args: Opt) -> Config:
    """Return the default configuration with the given options applied in order."""
    config = replace(DEFAULT_CONFIG)
    for apply_option in args:
        apply_option(config)
    return config