"""
Chat transport adapters
"""
from .whatsapp import WhatsAppWebhookAdapter
from .x_dm import XDirectMessagePoller

__all__ = ["WhatsAppWebhookAdapter", "XDirectMessagePoller"]
