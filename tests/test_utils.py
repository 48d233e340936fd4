import logging

from ledgersync.logging_config import setup_logging
from ledgersync.utils import parse_iso_timestamp, shorten_id


def test_shorten_id():
    assert shorten_id("0x" + "ab" * 20) == "0xababab...abababab"
    assert shorten_id("0xabc") == "0xabc"
    assert shorten_id(None) == ""


def test_parse_iso_timestamp():
    assert parse_iso_timestamp("1970-01-01T00:01:00Z") == 60.0
    assert parse_iso_timestamp("1970-01-01T00:01:00") == 60.0
    assert parse_iso_timestamp("yesterday") is None


def test_setup_logging_writes_only_warnings_to_file(tmp_path):
    log_file = tmp_path / "ledgersync.log"
    logger = setup_logging(str(log_file), logging.DEBUG)

    logger.info("routine")
    logger.warning("attention")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text()
    assert "attention" in content
    assert "routine" not in content
    assert logging.getLogger("httpx").level == logging.WARNING

    for handler in list(logging.getLogger().handlers):
        logging.getLogger().removeHandler(handler)
        handler.close()
