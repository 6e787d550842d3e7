"""
Scripted chatbot intake
"""
from ticket_intake.chatbot.state import ConversationStep, ConversationState, ConversationStore
from ticket_intake.chatbot.flow import Transition, advance, match_option
from ticket_intake.chatbot.engine import ConversationEngine

__all__ = [
    "ConversationStep",
    "ConversationState",
    "ConversationStore",
    "Transition",
    "advance",
    "match_option",
    "ConversationEngine",
]
