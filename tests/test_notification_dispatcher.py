"""Tests for NotificationDispatcher."""

import pytest
from conftest import FakeChannel, utc

from src.notifications.dispatcher import TEST_TITLE, NotificationDispatcher
from src.notifications.models import DeliveryResult, NotificationSettings


class RaisingChannel(FakeChannel):
    """Channel whose send raises instead of returning a result."""

    async def send(self, user_settings, title, message, *, metadata=None) -> DeliveryResult:
        raise RuntimeError("socket closed")


@pytest.fixture(autouse=True)
def _reset_dispatcher():
    """Reset the singleton before and after each test."""
    NotificationDispatcher._reset()
    yield
    NotificationDispatcher._reset()


@pytest.fixture
def user() -> NotificationSettings:
    return NotificationSettings(user_id="u1")


# -- Registration ------------------------------------------------------------


def test_register_and_list() -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email"))
    dispatcher.register_channel(FakeChannel("webhook"))
    assert dispatcher.list_channels() == ["email", "webhook"]


def test_register_duplicate_raises() -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email"))
    with pytest.raises(ValueError, match="already registered"):
        dispatcher.register_channel(FakeChannel("email"))


def test_get_channel_missing_returns_none() -> None:
    assert NotificationDispatcher.get().get_channel("pager") is None


def test_singleton_same_instance() -> None:
    assert NotificationDispatcher.get() is NotificationDispatcher.get()


def test_reset_creates_new_instance() -> None:
    first = NotificationDispatcher.get()
    NotificationDispatcher._reset()
    assert NotificationDispatcher.get() is not first


def test_available_channels(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email", available=False))
    dispatcher.register_channel(FakeChannel("webhook"))
    assert [ch.name for ch in dispatcher.available_channels(user)] == ["webhook"]


# -- send ----------------------------------------------------------------------


async def test_send_to_all_available(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    email, webhook = FakeChannel("email"), FakeChannel("webhook")
    dispatcher.register_channel(email)
    dispatcher.register_channel(webhook)

    result = await dispatcher.send(user, "Title", "Body", metadata={"type": "x"})

    assert result == DeliveryResult(success=True)
    assert email.sent == [("u1", "Title", "Body", {"type": "x"})]
    assert len(webhook.sent) == 1


async def test_send_partial_failure_is_success(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email", ok=False))
    dispatcher.register_channel(FakeChannel("webhook"))

    result = await dispatcher.send(user, "Title", "Body")
    assert result.success is True


async def test_send_all_fail_aggregates_errors(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email", ok=False))
    dispatcher.register_channel(RaisingChannel("webhook"))

    result = await dispatcher.send(user, "Title", "Body")

    assert result.success is False
    assert result.error == (
        "All notification channels failed: email: email is down; webhook: socket closed"
    )


async def test_send_no_channels(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email", available=False))

    result = await dispatcher.send(user, "Title", "Body")
    assert result == DeliveryResult(success=False, error="No notification channels enabled")


async def test_send_time_slot_gate() -> None:
    dispatcher = NotificationDispatcher.get()
    channel = FakeChannel("webhook")
    dispatcher.register_channel(channel)
    user = NotificationSettings(user_id="u1", allowed_time_slots={9, 18})

    blocked = await dispatcher.send(
        user, "T", "B", now=utc(2025, 1, 8, 10), respect_time_slots=True
    )
    assert blocked.success is False
    assert blocked.error == "Current hour (10) is outside the allowed notification hours"
    assert channel.sent == []

    allowed = await dispatcher.send(
        user, "T", "B", now=utc(2025, 1, 8, 18, 30), respect_time_slots=True
    )
    assert allowed.success is True


async def test_send_without_gate_ignores_slots() -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("webhook"))
    user = NotificationSettings(user_id="u1", allowed_time_slots={9})

    result = await dispatcher.send(user, "T", "B", now=utc(2025, 1, 8, 3))
    assert result.success is True


# -- send_test ---------------------------------------------------------------------


async def test_send_test_named_channel(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    email, webhook = FakeChannel("email"), FakeChannel("webhook")
    dispatcher.register_channel(email)
    dispatcher.register_channel(webhook)

    result = await dispatcher.send_test(user, "webhook")

    assert result.success is True
    assert email.sent == []
    assert webhook.sent[0][1] == TEST_TITLE
    assert webhook.sent[0][3] == {"type": "test"}


async def test_send_test_all_channels(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    email, webhook = FakeChannel("email"), FakeChannel("webhook")
    dispatcher.register_channel(email)
    dispatcher.register_channel(webhook)

    assert (await dispatcher.send_test(user)).success is True
    assert len(email.sent) == len(webhook.sent) == 1


async def test_send_test_unknown_channel(user: NotificationSettings) -> None:
    result = await NotificationDispatcher.get().send_test(user, "pager")
    assert result.error == "Unknown notification channel: pager"


async def test_send_test_unconfigured_channel(user: NotificationSettings) -> None:
    dispatcher = NotificationDispatcher.get()
    dispatcher.register_channel(FakeChannel("email", available=False))

    result = await dispatcher.send_test(user, "email")
    assert result.success is False
    assert result.error == "Channel 'email' is not enabled or not configured"
