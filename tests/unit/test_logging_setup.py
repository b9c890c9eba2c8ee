"""Unit tests for CLI logging configuration."""
from __future__ import annotations

import logging
import sys
from collections.abc import Iterator

import pytest

from yieldlens.logging_setup import configure_logging


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if getattr(h, "_yieldlens", False)]


@pytest.fixture()
def root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy = {name: logging.getLogger(name).level for name in ("aiohttp", "asyncio", "urllib3")}
    for handler in _ours(root):
        root.removeHandler(handler)
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, saved in noisy.items():
        logging.getLogger(name).setLevel(saved)


class TestConfigureLogging:
    def test_installs_marked_stderr_handler(self, root_logger: logging.Logger) -> None:
        configure_logging()
        (handler,) = _ours(root_logger)
        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr
        assert handler.formatter is not None
        assert handler.formatter._fmt == "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @pytest.mark.parametrize(
        "name,level",
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("Error", logging.ERROR)],
    )
    def test_level_names_are_case_insensitive(
        self, root_logger: logging.Logger, name: str, level: int
    ) -> None:
        configure_logging(name)
        assert root_logger.level == level

    def test_unknown_level_falls_back_to_info(self, root_logger: logging.Logger) -> None:
        configure_logging("chatty")
        assert root_logger.level == logging.INFO

    @pytest.mark.parametrize("name", ["aiohttp", "asyncio", "urllib3"])
    def test_transport_loggers_pinned_to_warning(
        self, root_logger: logging.Logger, name: str
    ) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger(name).level == logging.WARNING

    def test_reconfiguring_keeps_one_handler(self, root_logger: logging.Logger) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")
        assert len(_ours(root_logger)) == 1
        assert root_logger.level == logging.DEBUG
