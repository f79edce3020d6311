"""Tests for the logger: levels, formats and cleanup cascade."""

import re

import pytest

from rcverify.core.log import (
    ConsoleSink,
    FileSink,
    Logger,
    LogfireSink,
    OTLPSink,
    setup_logger,
)


def file_logger(log_file, **file_kwargs):
    return setup_logger(
        log_root=log_file.parent,
        run_name="test",
        console=ConsoleSink(enabled=False),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file), **file_kwargs),
        logfire=LogfireSink(enabled=False),
    )


def test_spew_level_includes_all(tmp_path):
    """Test that spew level keeps every message."""
    log_file = tmp_path / "spew.log"
    logger = file_logger(log_file, level="spew")

    logger.spew("SPEW message")
    logger.trace("TRACE message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.close()

    content = log_file.read_text()
    for level in ("SPEW", "TRACE", "DEBUG", "INFO"):
        assert f"{level} message" in content


def test_info_level_filters_debug(tmp_path):
    """Test that the default info level drops debug and below."""
    log_file = tmp_path / "info.log"
    logger = file_logger(log_file)

    logger.spew("SPEW message")
    logger.debug("DEBUG message")
    logger.info("INFO message")
    logger.error("ERROR message")
    logger.close()

    content = log_file.read_text()
    assert "SPEW message" not in content
    assert "DEBUG message" not in content
    assert "INFO message" in content
    assert "ERROR message" in content


def test_default_json_format(tmp_path):
    """Test that no template writes OpenTelemetry JSON spans."""
    log_file = tmp_path / "default.log"
    logger = file_logger(log_file)

    logger.info("Test message")
    logger.close()

    content = log_file.read_text()
    assert content.startswith("{")
    assert '"name": "Test message"' in content


def test_text_format_with_attributes(tmp_path):
    """Test a text template and the appended custom attributes."""
    log_file = tmp_path / "text.log"
    logger = file_logger(
        log_file, format_template="[{level}] {message}"
    )

    logger.info("Build failed", environment="jdk-17")
    logger.close()

    line = log_file.read_text().strip()
    assert re.match(r"^\[info\] Build failed │ .*environment='jdk-17'", line)


def test_escape_special_characters(tmp_path):
    """Test that escaping keeps a multi-line message on one line."""
    log_file = tmp_path / "escaped.log"
    logger = file_logger(
        log_file, format_template="{message}", escape_special_characters=True
    )

    logger.info("Line 1\nLine 2\tTabbed")
    logger.close()

    assert log_file.read_text() == 'Line 1\\nLine 2\\tTabbed\n'


def test_invalid_template_field_reported(tmp_path):
    """Test that an unknown template field is written as an error line."""
    log_file = tmp_path / "bad.log"
    logger = file_logger(log_file, format_template="{nope} {message}")

    logger.info("Test message")
    logger.close()

    assert "Invalid template field 'nope'" in log_file.read_text()


def test_file_path_template(tmp_path):
    """Test that {log_root} and {run_name} expand in the file path."""
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True),
        otlp=OTLPSink(enabled=False),
        logfire={"enabled": False},
    )
    logger.setup(log_root=tmp_path, run_name="rc1")
    logger.close()

    assert (tmp_path / "rc1" / "rcverify.log").exists()


def test_logger_closes_file_via_context_manager(tmp_path):
    """Test that logger closes files when used as context manager."""
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(tmp_path / "test.log")),
        otlp=OTLPSink(enabled=False),
        logfire={"enabled": False}
    )
    logger.setup(log_root=tmp_path, run_name="test")
    assert not logger.file._file.closed

    with logger:
        logger.info("test message")

    assert logger.file._file.closed


def test_logger_closes_on_exception(tmp_path):
    """Test that logger closes files even when exception occurs."""
    logger = Logger(
        console=ConsoleSink(enabled=False),
        file=FileSink(enabled=True, path=str(tmp_path / "test.log")),
        otlp=OTLPSink(enabled=False),
        logfire={"enabled": False}
    )
    logger.setup(log_root=tmp_path, run_name="test")

    with pytest.raises(ValueError), logger:
        raise ValueError("test exception")

    assert logger.file._file.closed


def test_level_cascades_to_sinks():
    """Test that sinks without a level inherit the logger's."""
    logger = Logger(level="debug", file=FileSink(level="error"))

    assert logger.console.level == "debug"
    assert logger.file.level == "error"
