import json
import logging
import sys
from unittest.mock import patch

import pytest
from config.logging import JsonFormatter, SamplingFilter
from django.db import DatabaseError
from rest_framework.test import APIClient


def _record(msg, level=logging.INFO, **extra):
    record = logging.LogRecord("storefront.orders", level, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    payload = json.loads(JsonFormatter().format(_record("payment_settled", event="payment_settled", order_id=7)))

    assert payload["level"] == "INFO"
    assert payload["name"] == "storefront.orders"
    assert payload["message"] == "payment_settled"
    assert payload["event"] == "payment_settled"
    assert payload["order_id"] == 7
    assert payload["time"].endswith("Z")


def test_json_formatter_handles_dict_messages_and_unserializable_extras():
    payload = json.loads(JsonFormatter().format(_record({"event": "order.created", "total": "9.99"}, obj=object())))

    assert payload["event"] == "order.created"
    assert payload["total"] == "9.99"
    assert payload["obj"].startswith("<object object")


def test_json_formatter_renders_exceptions():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exc_info"]


def test_sampling_filter_keeps_allowed_events_and_other_levels():
    f = SamplingFilter(rate=0.0, levels=["INFO"], allow_events=["order_status_changed"])

    assert f.filter(_record("order_status_changed")) is True
    assert f.filter(_record("anything", event="order_status_changed")) is True
    assert f.filter(_record("cart.item_added")) is False
    assert f.filter(_record("cart.item_added", level=logging.WARNING)) is True
    assert f.filter(_record({"event": "dict"})) is False


def test_sampling_filter_rate_bounds():
    assert SamplingFilter(rate=1.0).filter(_record("x")) is True
    assert SamplingFilter(rate="bad").rate == 1.0
    with patch("config.logging.random.random", return_value=0.2):
        assert SamplingFilter(rate=0.5).filter(_record("x")) is True
    with patch("config.logging.random.random", return_value=0.8):
        assert SamplingFilter(rate=0.5).filter(_record("x")) is False


@pytest.mark.django_db
def test_health_reports_database_state():
    r = APIClient().get("/health/")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "database": "ok"}

    with patch("config.health.connection.cursor", side_effect=DatabaseError("down")):
        r_down = APIClient().get("/health/")
    assert r_down.status_code == 503
    assert r_down.json()["status"] == "degraded"
