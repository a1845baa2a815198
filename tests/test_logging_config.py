from __future__ import annotations

import json

from loguru import logger

from objstore.logging_config import get_logger, setup_logging


def test_json_logging_to_file(tmp_path):
    log_file = tmp_path / "logs" / "objstore.log"
    setup_logging(level="DEBUG", json_format=True, log_file=log_file)
    try:
        get_logger("objstore.test").info("stored object")
    finally:
        logger.remove()

    payload = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
    assert payload["message"] == "stored object"
    assert payload["level"] == "INFO"
    assert payload["name"] == "objstore.test"
    assert "serialized" not in payload


def test_text_logging_respects_level(tmp_path):
    log_file = tmp_path / "objstore.log"
    setup_logging(level="WARNING", log_file=log_file)
    try:
        get_logger("objstore.test").info("hidden")
        get_logger("objstore.test").warning("shown")
    finally:
        logger.remove()

    content = log_file.read_text(encoding="utf-8")
    assert "shown" in content
    assert "hidden" not in content
    assert "objstore.test" in content
