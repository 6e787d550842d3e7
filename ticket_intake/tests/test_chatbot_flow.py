"""
Unit tests for the dialogue tree and transition function

`advance` is pure, so these tests drive it with bare ConversationState
objects and no channel.
"""
import pytest

from ticket_intake.chatbot.flow import (
    FREE_TEXT_STEPS,
    INVALID_CHOICE,
    MAIN_OPTIONS,
    MENUS,
    SELL_AFTER_OPTIONS,
    advance,
    confirmation_message,
    match_option,
    normalize,
)
from ticket_intake.chatbot.state import ConversationState, ConversationStep


def state_at(step: ConversationStep, **data) -> ConversationState:
    return ConversationState(sender_id="966500000000@c.us", channel="whatsapp", step=step, data=dict(data))


class TestMatching:
    def test_numeral(self):
        assert match_option("1", MAIN_OPTIONS).value == "buy"
        assert match_option(" 2 ", MAIN_OPTIONS).value == "sell"

    def test_arabic_indic_numeral(self):
        assert match_option("٢", MAIN_OPTIONS).value == "sell"

    def test_keyword_substring_case_insensitive(self):
        assert match_option("I want to SELL my tickets", MAIN_OPTIONS).value == "sell"
        assert match_option("أبغى شراء تذكرة", MAIN_OPTIONS).value == "buy"

    def test_first_match_wins(self):
        # "12" contains both numerals; option order decides
        assert match_option("12", MAIN_OPTIONS).value == "buy"

    def test_no_match(self):
        assert match_option("hello", MAIN_OPTIONS) is None
        assert match_option("", MAIN_OPTIONS) is None

    def test_normalize(self):
        assert normalize("  ١٢ ABC ") == "12 abc"
        assert normalize(None) == ""


class TestAdvance:
    def test_welcome_shows_main_menu(self):
        transition = advance(state_at(ConversationStep.WELCOME), "1")

        assert transition.next_step == ConversationStep.MAIN_CHOICE
        assert transition.reply == MENUS[ConversationStep.MAIN_CHOICE].prompt
        assert transition.reset is True
        assert transition.create_ticket is False

    def test_completed_restarts(self):
        transition = advance(state_at(ConversationStep.COMPLETED, intent="buy"), "hi again")

        assert transition.next_step == ConversationStep.MAIN_CHOICE
        assert transition.reset is True

    def test_menu_choice_records_field(self):
        transition = advance(state_at(ConversationStep.MAIN_CHOICE), "1")

        assert transition.next_step == ConversationStep.BUY_TIMING
        assert transition.record == {"intent": "buy"}
        assert transition.reply == MENUS[ConversationStep.BUY_TIMING].prompt

    def test_invalid_choice_reprompts_same_step(self):
        transition = advance(state_at(ConversationStep.SELL_TIMING), "what?")

        assert transition.next_step == ConversationStep.SELL_TIMING
        assert transition.reply.startswith(INVALID_CHOICE)
        assert MENUS[ConversationStep.SELL_TIMING].prompt in transition.reply
        assert transition.record == {}

    def test_event_name_is_free_text_and_completes(self):
        transition = advance(state_at(ConversationStep.BUY_EVENT_NAME), "  Concert X ")

        assert transition.record == {"event_name": "Concert X"}
        assert transition.next_step == ConversationStep.COMPLETED
        assert transition.create_ticket is True

    def test_buy_after_purchase_asks_event_type_then_email(self):
        after = advance(state_at(ConversationStep.BUY_TIMING), "after")
        assert after.next_step == ConversationStep.BUY_EVENT_TYPE

        event = advance(state_at(ConversationStep.BUY_EVENT_TYPE), "مسرح")
        assert event.record == {"event_type": "theater"}
        assert event.next_step == ConversationStep.GET_EMAIL

    def test_email_step_completes(self):
        transition = advance(state_at(ConversationStep.GET_EMAIL), "sara@example.com")

        assert transition.record == {"email": "sara@example.com"}
        assert transition.create_ticket is True

    def test_sell_before_topic_creates_ticket(self):
        transition = advance(state_at(ConversationStep.SELL_BEFORE_OPTIONS), "2")

        assert transition.record == {"topic": "pricing"}
        assert transition.next_step == ConversationStep.COMPLETED
        assert transition.create_ticket is True

    def test_sell_after_cancel_asks_for_email(self):
        transition = advance(state_at(ConversationStep.SELL_AFTER_OPTIONS), "3")

        assert transition.record == {"topic": "cancel sale"}
        assert transition.next_step == ConversationStep.GET_EMAIL
        assert transition.create_ticket is False


class TestTreeConsistency:
    """Every edge leads to a step the engine knows how to handle"""

    def test_all_option_targets_are_handled(self):
        handled = set(MENUS) | set(FREE_TEXT_STEPS) | {ConversationStep.COMPLETED}
        for menu in MENUS.values():
            for option in menu.options:
                assert option.next_step in handled

    def test_terminal_options_create_tickets(self):
        for menu in MENUS.values():
            for option in menu.options:
                if option.next_step == ConversationStep.COMPLETED:
                    assert option.create_ticket, option.value

    def test_every_menu_numbers_its_options(self):
        for menu in MENUS.values():
            for position in range(1, len(menu.options) + 1):
                assert f"{position}️⃣" in menu.prompt

    @pytest.mark.parametrize("position", range(1, len(SELL_AFTER_OPTIONS) + 1))
    def test_each_numeral_selects_its_option(self, position):
        assert match_option(str(position), SELL_AFTER_OPTIONS) is SELL_AFTER_OPTIONS[position - 1]


class TestConfirmation:
    def test_with_ticket_id(self):
        assert "TKT-ABC" in confirmation_message("TKT-ABC")

    def test_without_ticket_id(self):
        assert "TKT" not in confirmation_message(None)
