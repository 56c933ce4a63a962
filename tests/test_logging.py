"""
Tests for structured logging helpers and JSON encoding.
"""
import json
import logging

from stableflip.core.json_utils import dumps, dumps_pretty, loads
from stableflip.infra.logging_cfg import JsonFormatter, ThrottledFilter, log_event


def _record(msg):
    return logging.LogRecord("stableflip", logging.INFO, __file__, 1, msg, None, None)


class TestJson:

    def test_big_ints_are_stringified(self):
        payload = loads(dumps({"order_id": 2 ** 100, "tick": -50, "ok": True}))
        assert payload == {"order_id": str(2 ** 100), "tick": -50, "ok": True}

    def test_pretty_is_indented(self):
        assert dumps_pretty({"a": [1]}).startswith(b"{\n  ")


class TestLogEvent:

    def test_payload(self, caplog):
        log = logging.getLogger("stableflip.test")
        with caplog.at_level(logging.INFO, logger="stableflip.test"):
            log_event(log, "quote_placed", pair="AlphaUSD/pathUSD", tick=-50)
        assert json.loads(caplog.records[-1].getMessage()) == {
            "event": "quote_placed", "pair": "AlphaUSD/pathUSD", "tick": -50,
        }

    def test_formatter(self):
        out = json.loads(JsonFormatter().format(_record('{"event":"x"}')))
        assert out["level"] == "INFO"
        assert out["msg"] == '{"event":"x"}'


class TestThrottledFilter:

    def test_repeats_are_suppressed_per_pair(self):
        f = ThrottledFilter(cooldown_sec=60)
        first = _record(dumps({"event": "pair_cooldown", "pair": "AlphaUSD/pathUSD"}))
        again = _record(dumps({"event": "pair_cooldown", "pair": "AlphaUSD/pathUSD"}))
        other = _record(dumps({"event": "pair_cooldown", "pair": "BetaUSD/pathUSD"}))
        assert f.filter(first)
        assert not f.filter(again)
        assert f.filter(other)

    def test_other_events_pass(self):
        f = ThrottledFilter(cooldown_sec=60)
        for _ in range(3):
            assert f.filter(_record(dumps({"event": "quote_placed"})))
        assert f.filter(_record("plain text"))
