import logging

from utils.logger import LOG_FORMAT, get_logger


def test_get_logger_adds_single_handler():
    logger = get_logger("rebalancer.test.single")
    get_logger("rebalancer.test.single")
    assert len(logger.handlers) == 1
    assert logger.handlers[0].formatter._fmt == LOG_FORMAT


def test_level_from_argument_and_env(monkeypatch):
    assert get_logger("rebalancer.test.arg", level="debug").level == logging.DEBUG
    monkeypatch.setenv("REBALANCER_LOG_LEVEL", "WARNING")
    assert get_logger("rebalancer.test.env").level == logging.WARNING
    monkeypatch.setenv("REBALANCER_LOG_LEVEL", "nonsense")
    assert get_logger("rebalancer.test.bad").level == logging.INFO
