"""Tests for logging setup and request logging."""
import logging
import uuid

from slotbook.config.settings import get_settings
from slotbook.core.middleware import business_id_from_path
from slotbook.utils.my_logging import ENGINE_LOGGER, setup_logging


def test_business_id_from_path():
    business_id = uuid.uuid4()
    assert business_id_from_path(f"/api/v1/businesses/{business_id}/availability") == str(business_id)
    assert business_id_from_path(f"/api/v1/businesses/{str(business_id).upper()}") == str(business_id)
    assert business_id_from_path("/health/") is None
    assert business_id_from_path("/api/v1/businesses/not-a-uuid/availability") is None


def test_engine_logger_has_its_own_level(monkeypatch):
    engine_logger = logging.getLogger(ENGINE_LOGGER)
    original = engine_logger.level
    monkeypatch.setattr(get_settings(), "SCHEDULING_LOG_LEVEL", "WARNING")
    try:
        setup_logging()
        assert engine_logger.level == logging.WARNING
        assert logging.getLogger("slotbook.scheduling.conflicts").getEffectiveLevel() == logging.WARNING
    finally:
        engine_logger.setLevel(original)
