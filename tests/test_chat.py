import pytest

from exam_prep.errors import ValidationError
from exam_prep.generator import CHAT_OPENERS


def test_send_chat_message_records_history(demo_store):
    reply = demo_store.send_chat_message("photosynthesis")
    assert any(reply.startswith(opener) for opener in CHAT_OPENERS)
    assert '"photosynthesis"' in reply
    history = demo_store.get_chat_history()
    assert len(history) == 1
    assert history[0].message == "photosynthesis"
    assert history[0].response == reply
    assert history[0].user_id == "1"


def test_send_chat_message_logged_out_is_not_recorded(store, slot):
    saves = slot.saves
    reply = store.send_chat_message("hello")
    assert reply
    assert store.chat_messages == []
    assert slot.saves == saves


def test_send_empty_message(demo_store):
    with pytest.raises(ValidationError):
        demo_store.send_chat_message("   ")


def test_chat_history_is_private(demo_store):
    demo_store.send_chat_message("first")
    demo_store.logout()
    demo_store.register("ada@example.com", "pw", "Ada")
    demo_store.send_chat_message("second")
    assert [m.message for m in demo_store.get_chat_history()] == ["second"]
