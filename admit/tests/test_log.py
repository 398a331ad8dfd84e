import logging

from rich.logging import RichHandler

from admit.log import configure_logging


def test_configure_logging_installs_one_handler():
    first = configure_logging("debug")
    second = configure_logging("WARNING")
    assert first is second is logging.getLogger("admit")
    assert sum(isinstance(h, RichHandler) for h in first.handlers) == 1
    assert first.level == logging.WARNING
    assert first.propagate is False
