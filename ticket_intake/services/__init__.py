"""
Business Logic Services
"""
from .gateways import GreenApiGateway, TelegramGateway, XDirectMessageClient
from .notifier import NotificationDispatcher
from .summarizer import TicketSummarizer
from .ticket_ids import RandomTicketIdGenerator, SequentialTicketIdGenerator, create_id_generator
from .ticket_service import TicketService

__all__ = [
    "GreenApiGateway",
    "TelegramGateway",
    "XDirectMessageClient",
    "NotificationDispatcher",
    "TicketSummarizer",
    "RandomTicketIdGenerator",
    "SequentialTicketIdGenerator",
    "create_id_generator",
    "TicketService",
]
