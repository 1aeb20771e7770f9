import logging

from production_volume.utils import logger as package_logging
from production_volume.utils.logger import PACKAGE_LOGGER, get_logger


def test_module_loggers_propagate_to_the_package_logger():
    log = get_logger("production_volume.data.cache_store")

    assert log.name == "production_volume.data.cache_store"
    assert log.handlers == []
    assert log.propagate


def test_foreign_names_are_nested_under_the_package():
    assert get_logger("report").name == "production_volume.report"


def test_handlers_are_attached_once():
    get_logger("production_volume.a")
    get_logger("production_volume.b")

    handlers = logging.getLogger(PACKAGE_LOGGER).handlers
    assert len(handlers) == 2
    assert {type(h) for h in handlers} == {logging.FileHandler, logging.StreamHandler}


def test_lines_carry_the_worker_thread_name():
    record = logging.LogRecord(
        "production_volume.data.live_aggregation", logging.INFO, __file__, 1,
        "partial done", None, None,
    )
    record.threadName = "pdvolume_0"

    assert "| pdvolume_0" in package_logging.formatter.format(record)
