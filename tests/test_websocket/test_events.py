"""
Unit tests for the event relay.
"""
import logging

import pytest

from gemini_client.events import EventRelay
from gemini_client.exceptions import MalformedFrameError


class TestEventRelay:
    """Test translation of transport events."""

    def test_open_and_close_carry_name(self, event_log) -> None:
        relay = EventRelay()
        event_log.attach(relay)

        relay.relay_open("btcusd")
        relay.relay_close("btcusd")

        assert event_log.events == [("open", ("btcusd",)), ("close", ("btcusd",))]

    def test_error_with_payload(self, event_log) -> None:
        relay = EventRelay()
        event_log.attach(relay)
        error = RuntimeError("Something bad happened")

        relay.relay_error("v2", error)

        assert event_log.of("error") == [(error, "v2")]

    @pytest.mark.parametrize("empty", [None, "", 0, False])
    def test_empty_error_is_suppressed(self, event_log, empty) -> None:
        """Transports sometimes fire error events with no error attached."""
        relay = EventRelay()
        event_log.attach(relay)

        relay.relay_error("v2", empty)

        assert event_log.events == []

    def test_message_parsed(self, event_log) -> None:
        relay = EventRelay()
        event_log.attach(relay)

        relay.relay_message("orders", b'[{"type": "initial"}]')

        assert event_log.of("message") == [([{"type": "initial"}], "orders")]
        assert event_log.of("error") == []

    def test_bad_frame_becomes_error(self, event_log) -> None:
        relay = EventRelay()
        event_log.attach(relay)

        relay.relay_message("ethusd", "{not json")

        assert event_log.of("message") == []
        [(error, name)] = event_log.of("error")
        assert name == "ethusd"
        assert isinstance(error, MalformedFrameError)
        assert isinstance(error, ValueError)
        assert error.frame == "{not json"

    def test_unknown_event(self) -> None:
        relay = EventRelay()

        with pytest.raises(ValueError, match="Unknown event 'data'"):
            relay.on("data", lambda *args: None)

    def test_on_returns_callback(self) -> None:
        relay = EventRelay()

        def handler(name: str) -> None:
            pass

        assert relay.on("open", handler) is handler
        assert relay.listener_count("open") == 1

    def test_raising_listener_does_not_stop_others(self, caplog) -> None:
        relay = EventRelay()
        received: list = []

        def broken(name: str) -> None:
            raise RuntimeError("listener bug")

        relay.on("open", broken)
        relay.on("open", received.append)

        with caplog.at_level(logging.ERROR):
            relay.relay_open("v2")

        assert received == ["v2"]
        assert "Listener for 'open' raised" in caplog.text

    def test_once_removed_after_first_call(self) -> None:
        relay = EventRelay()
        received: list = []
        relay.once("close", received.append)

        relay.relay_close("v2")
        relay.relay_close("v2")

        assert received == ["v2"]
        assert relay.listener_count("close") == 0
