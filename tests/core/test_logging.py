import json
import logging
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from marketplace.core import logging as logging_module


def test_serialize_record_basic():
    record = {
        "time": datetime.now(),
        "level": SimpleNamespace(name="INFO"),
        "message": "Catalog search returned 3 of 3 items",
        "name": "marketplace.services.catalog_query",
        "function": "search",
        "line": 123,
        "extra": {
            "category_id": 1,
            "total": 3,
            "_private": "hidden",
        },
    }

    serialized = json.loads(logging_module.serialize_record(record))
    assert serialized["message"] == "Catalog search returned 3 of 3 items"
    assert serialized["category_id"] == 1
    assert serialized["total"] == 3
    assert serialized["function"] == "search"
    assert "_private" not in serialized


def test_serialize_record_stringifies_unknown_values():
    record = {
        "time": datetime.now(),
        "level": SimpleNamespace(name="INFO"),
        "message": "Price filter",
        "extra": {"min_price": Decimal("9.99")},
    }

    serialized = json.loads(logging_module.serialize_record(record))
    assert serialized["min_price"] == "9.99"


def test_serialize_record_fallback():
    # A record without a timestamp cannot be serialized normally
    record = {
        "level": SimpleNamespace(name="ERROR"),
        "message": "Fails",
    }

    serialized = logging_module.serialize_record(record)
    assert "Error serializing log" in serialized
    assert "Fails" in serialized


def test_intercept_handler_emit_levels(caplog):
    handler = logging_module.InterceptHandler()

    class FakeRecord:
        def __init__(self, levelno, message):
            self.levelno = levelno
            self.exc_info = None

        def getMessage(self):
            return "test log message"

    with caplog.at_level(logging.DEBUG):
        handler.emit(FakeRecord(logging.INFO, "info"))
        handler.emit(FakeRecord(logging.ERROR, "error"))
        handler.emit(FakeRecord(logging.DEBUG, "debug"))
        handler.emit(FakeRecord(logging.CRITICAL, "critical"))


@patch("marketplace.core.logging.logger")
@patch("marketplace.core.logging.settings.JSON_LOGS", True)
def test_configure_logging_json(mock_logger):
    mock_logger.add = MagicMock()
    mock_logger.remove = MagicMock()

    logging_module.configure_logging()
    mock_logger.add.assert_called()
    mock_logger.remove.assert_called()
    assert mock_logger.info.called


@patch("marketplace.core.logging.logger")
@patch("marketplace.core.logging.settings.JSON_LOGS", False)
def test_configure_logging_human(mock_logger):
    mock_logger.add = MagicMock()
    mock_logger.remove = MagicMock()

    logging_module.configure_logging()
    mock_logger.add.assert_called()
    mock_logger.remove.assert_called()
    assert mock_logger.info.called
    assert isinstance(logging.getLogger("uvicorn").handlers[0], logging_module.InterceptHandler)
