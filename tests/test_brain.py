"""Greeting policy and the full message pipeline."""

from orderbot.checkout import CheckoutInfo
from orderbot.messages import (
    COLD_GREETING,
    MAIN_MENU,
    NO_COMMAND_TEXT,
    REMINDER_GREETING,
    SAY_MENU,
    SMARTY_PANTS_GREETING,
)
from orderbot.ordering.brain import compose_reply, handle_message, is_blank_result
from orderbot.ordering.conversation import ConversationContext
from orderbot.ordering.cart import load_items
from orderbot.transport import TransportError


def _convo(existed):
    return ConversationContext(message_body="", user=None, user_existed=existed)


def test_new_user_with_results():
    convo = _convo(False)
    reply = compose_reply(convo, "successfully updated current order", True)
    assert reply.startswith(SMARTY_PANTS_GREETING)
    assert reply.endswith(SAY_MENU)
    assert reply == "\n\n".join(
        [SMARTY_PANTS_GREETING, "successfully updated current order", REMINDER_GREETING, SAY_MENU]
    )
    assert convo.user_existed is True


def test_new_user_without_command():
    convo = _convo(False)
    reply = compose_reply(convo, "", False)
    assert reply == "\n\n".join([COLD_GREETING, REMINDER_GREETING, SAY_MENU])
    assert convo.user_existed is True


def test_returning_user_without_command():
    reply = compose_reply(_convo(True), "", False)
    assert reply == NO_COMMAND_TEXT + "\n\n" + SAY_MENU


def test_returning_user_gets_results_verbatim():
    assert compose_reply(_convo(True), "line one\nline two", True) == "line one\nline two"


def test_blank_results_count_as_nothing():
    for blank in ("", " ", "\n"):
        assert is_blank_result(blank)
        assert compose_reply(_convo(True), blank, True) == NO_COMMAND_TEXT + "\n\n" + SAY_MENU
    assert not is_blank_result("  x")


def test_second_turn_sees_known_user():
    convo = _convo(False)
    compose_reply(convo, "menu", True)
    assert compose_reply(convo, "menu", True) == "menu"


class BrokenTransport:
    def __init__(self):
        self.calls = 0

    def send_message(self, destination, text):
        self.calls += 1
        raise TransportError("network down")


def test_handle_message_sends_exactly_once(store, make_convo, transport):
    convo = make_convo("menu?")
    reply = handle_message(convo, store, transport, CheckoutInfo(), True)
    assert transport.sent == [("27825550101", reply)]
    # first contact: greeting wraps the menu
    assert reply.startswith(SMARTY_PANTS_GREETING)
    assert MAIN_MENU in reply


def test_handle_message_updates_store(store, make_convo, transport, user):
    convo = make_convo("update nickname: Bob\nupdate order 9:12, 10: 1x3, 3x2, 2x1, 6:5")
    convo.user_existed = True
    reply = handle_message(convo, store, transport, CheckoutInfo(), True)
    assert reply == "successfully updated user info.nickname to Bob\nsuccessfully updated current order"
    assert user.nickname == "Bob"
    order = store.current_order(user)
    assert [(i.item_menu_number, i.item_amount) for i in load_items(order.items_json)] == [
        (10, "1x3,3x2,2x1"),
        (9, "12"),
        (6, "5"),
    ]


def test_handle_message_survives_transport_failure(store, make_convo):
    broken = BrokenTransport()
    convo = make_convo("gibberish")
    convo.user_existed = True
    reply = handle_message(convo, store, broken, CheckoutInfo(), True)
    assert broken.calls == 1
    assert reply.startswith(NO_COMMAND_TEXT)
