import asyncio
from datetime import timedelta, timezone

import pytest

from fakes import ME, at, make_conversation, make_message
from rental_client.core.errors import NetworkError, SendFailed
from rental_client.schemas.message import SenderSummary
from rental_client.stores.identity import ConfirmedId, PendingId
from rental_client.stores.message_thread import ThreadMessage
from rental_client.views import Composer, build_conversation_card, build_message_bubble
from rental_client.views.formatting import clock_label, relative_time_label, unread_badge


@pytest.mark.parametrize(
    ("elapsed", "label"),
    [
        (timedelta(seconds=30), "Just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3), "3h ago"),
        (timedelta(hours=30), "Yesterday"),
        (timedelta(days=4), "4d ago"),
    ],
)
def test_relative_time_label(elapsed, label):
    assert relative_time_label(at(0), now=at(0) + elapsed) == label


def test_unread_badge_caps_large_counts():
    assert unread_badge(0, 99) == ""
    assert unread_badge(7, 99) == "7"
    assert unread_badge(150, 99) == "99+"


def test_clock_label_uses_twelve_hour_clock():
    assert clock_label(at(0), timezone.utc) == "12:00 PM"
    assert clock_label(at(0) + timedelta(hours=3, minutes=7), timezone.utc) == "3:07 PM"
    assert clock_label(at(0) - timedelta(hours=12), timezone.utc) == "12:00 AM"


def test_clock_label_renders_in_viewer_zone():
    lagos = timezone(timedelta(hours=1))
    los_angeles = timezone(timedelta(hours=-8))

    assert clock_label(at(0), lagos) == "1:00 PM"
    assert clock_label(at(0), los_angeles) == "4:00 AM"


def test_conversation_card_view():
    conversation = make_conversation(
        "c-1",
        unread=120,
        last_message="Sure,   the viewing is at   noon " + "x" * 200,
        seconds=0,
        partner_name="",
    )

    card = build_conversation_card(conversation, active_id="c-1", now=at(120), preview_max_chars=20)

    assert card.partner_name == "Landlord"
    assert card.partner_initial == "L"
    assert card.preview == "Sure, the viewing..."
    assert card.unread_badge == "99+"
    assert card.highlighted is True
    assert card.is_active is True
    assert card.time_label == "2m ago"


def test_message_bubble_for_partner_and_own_messages():
    partner = make_message("m-1", 0).model_copy(
        update={"sender": SenderSummary(id="landlord-9", full_name="ada obi")}
    )
    own = make_message("m-2", 60, sender_id=ME)

    partner_view = build_message_bubble(ThreadMessage(ConfirmedId("m-1"), partner), ME)
    own_view = build_message_bubble(ThreadMessage(ConfirmedId("m-2"), own), ME, tz=timezone.utc)

    assert partner_view.is_own is False
    assert partner_view.sender_name == "ada obi"
    assert partner_view.sender_initial == "A"
    assert own_view.is_own is True
    assert own_view.sender_name is None
    assert own_view.time_label == "12:01 PM"


def test_pending_bubble_is_marked():
    message = make_message("local-1", 0, sender_id="")
    view = build_message_bubble(ThreadMessage(PendingId("local-1"), message), None)

    assert view.is_pending is True
    assert view.is_own is True


def test_composer_clears_draft_and_sends_trimmed_text():
    sent = []

    async def send(text):
        sent.append(text)
        return text

    composer = Composer(send, max_length=500, templates=["Can I schedule a viewing?"])
    composer.use_template(composer.quick_templates[0])

    result = asyncio.run(composer.submit())

    assert result == "Can I schedule a viewing?"
    assert sent == ["Can I schedule a viewing?"]
    assert composer.draft == ""
    assert composer.sending is False


def test_composer_restores_draft_when_send_fails():
    async def send(text):
        raise SendFailed(text, NetworkError("offline"))

    composer = Composer(send, max_length=500, templates=[])
    composer.update("  hello  ")

    with pytest.raises(SendFailed):
        asyncio.run(composer.submit())

    assert composer.draft == "  hello  "
    assert composer.error is not None


def test_composer_enforces_length_and_blank_drafts():
    async def send(text):
        raise AssertionError("should not send")

    composer = Composer(send, max_length=5, templates=[])
    composer.update("abcdefgh")
    assert composer.draft == "abcde"
    assert composer.remaining == 0

    composer.update("   ")
    assert composer.can_submit is False
    assert asyncio.run(composer.submit()) is None
