import logging

from storefront_gateway.logging import NOISY_LIBRARIES, get_logger, quiet_libraries


def test_logger_is_configured_once(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warn")
    logger = get_logger("test-configured-once")
    again = get_logger("test-configured-once")

    assert again is logger
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
    assert logger.propagate is False


def test_unwritable_log_file_is_ignored(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "missing-dir" / "gateway.log"))
    logger = get_logger("test-bad-log-file")
    assert len(logger.handlers) == 1


def test_log_file_receives_records(monkeypatch, tmp_path):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = tmp_path / "gateway.log"
    monkeypatch.setenv("LOG_FILE", str(path))
    logger = get_logger("test-log-file")
    logger.info("hello file")
    for handler in logger.handlers:
        handler.flush()
    assert "[test-log-file] INFO: hello file" in path.read_text(encoding="utf-8")


def test_client_libraries_follow_gateway_level():
    quiet_libraries(logging.INFO)
    assert all(logging.getLogger(lib).level == logging.WARNING for lib in NOISY_LIBRARIES)

    quiet_libraries(logging.DEBUG)
    assert all(logging.getLogger(lib).level == logging.DEBUG for lib in NOISY_LIBRARIES)
    quiet_libraries(logging.INFO)
