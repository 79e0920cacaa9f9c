"""Tests for the PprintLogger and setup_logging functionality.

This module verifies:
- pprint formatting of dicts and pydantic models
- pprint=False uses simple string conversion
- Records point at the caller's line, not the wrapper
- Delegation to underlying logger attributes works
- setup_logging names loggers after the calling module
"""

import logging
from io import StringIO

import pytest
from pydantic import BaseModel

from graphport.logging import PprintLogger, setup_logging


@pytest.fixture
def captured():
    """A fresh logger with a handler capturing formatted output."""
    logger = logging.getLogger("graphport.tests.captured")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(funcName)s:%(message)s"))
    logger.addHandler(handler)
    yield logger, stream
    logger.removeHandler(handler)


class Summary(BaseModel):
    entity: str
    records: int


class TestPprintLogger:
    def test_pprint_formats_dict(self, captured) -> None:
        logger, stream = captured

        PprintLogger(logger).info({"message": "Exported record graph", "records": 3})

        output = stream.getvalue()
        assert "'message': 'Exported record graph'" in output
        assert "'records': 3" in output

    def test_pprint_false_uses_str(self, captured) -> None:
        logger, stream = captured
        value = {"key": "value"}

        PprintLogger(logger).info(value, pprint=False)

        assert str(value) in stream.getvalue()

    def test_pydantic_models_are_dumped_as_json(self, captured) -> None:
        logger, stream = captured

        PprintLogger(logger).warning(Summary(entity="Person", records=2))

        output = stream.getvalue()
        assert '"entity": "Person"' in output
        assert '"records": 2' in output

    def test_strings_support_format_args(self, captured) -> None:
        logger, stream = captured

        PprintLogger(logger).debug("wrote %d records", 5)

        assert "wrote 5 records" in stream.getvalue()

    def test_record_points_at_caller(self, captured) -> None:
        logger, stream = captured

        PprintLogger(logger).error("boom")

        assert stream.getvalue().startswith("test_record_points_at_caller:")

    def test_disabled_level_is_skipped(self, captured) -> None:
        logger, stream = captured
        logger.setLevel(logging.WARNING)

        PprintLogger(logger).info({"message": "hidden"})

        assert stream.getvalue() == ""

    def test_exception_includes_traceback(self, captured) -> None:
        logger, stream = captured

        try:
            raise KeyError("missing")
        except KeyError:
            PprintLogger(logger).exception("lookup failed")

        assert "Traceback" in stream.getvalue()

    def test_delegation(self, captured) -> None:
        logger, _ = captured
        pprint_logger = PprintLogger(logger)

        assert pprint_logger.name == "graphport.tests.captured"
        assert pprint_logger.isEnabledFor(logging.DEBUG)


class TestSetupLogging:
    def test_defaults_to_calling_module(self) -> None:
        assert setup_logging().name == __name__

    def test_sets_level(self) -> None:
        logger = setup_logging("graphport.tests.level", level="DEBUG")

        assert logger.level == logging.DEBUG

    def test_single_handler_on_package_logger(self) -> None:
        setup_logging("graphport.tests.one")
        setup_logging("graphport.tests.two")

        assert len(logging.getLogger("graphport").handlers) == 1
