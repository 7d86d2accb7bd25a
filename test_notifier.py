# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""Tests for the notification channel."""

import pytest

from roster.services.notifier import Notifier


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier(clock):
    return Notifier(duration=3.0, clock=clock)


class TestNotifier:
    def test_nothing_shown_initially(self, notifier):
        assert notifier.current() is None

    def test_shortcuts_set_kind(self, notifier):
        assert notifier.success("ok").kind == "success"
        assert notifier.error("boom").kind == "error"
        assert notifier.warning("careful").kind == "warning"

    def test_newer_message_replaces_current(self, notifier):
        notifier.success("first")
        notifier.error("second")
        assert notifier.current().message == "second"

    def test_auto_dismiss(self, notifier, clock):
        notifier.success("saved")
        clock.now += 2.9
        assert notifier.current() is not None
        clock.now += 0.2
        assert notifier.current() is None

    def test_replacement_restarts_lifetime(self, notifier, clock):
        notifier.success("first")
        clock.now += 2.0
        notifier.warning("second")
        clock.now += 2.0
        assert notifier.current().message == "second"

    def test_dismiss(self, notifier):
        notifier.success("saved")
        notifier.dismiss()
        assert notifier.current() is None

    def test_unknown_kind(self, notifier):
        with pytest.raises(ValueError):
            notifier.notify("hello", "info")

    def test_icon_and_dict(self, notifier):
        note = notifier.error("Error while saving")
        assert note.icon == "✕"
        data = note.to_dict()
        assert data["kind"] == "error"
        assert data["message"] == "Error while saving"
        assert "created_at" in data
