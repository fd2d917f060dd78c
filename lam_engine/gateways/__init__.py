"""Outbound communication gateways used by approval-gated actions."""

from .base import HttpGateway
from .email import EmailGateway
from .sms import SmsGateway

__all__ = ["HttpGateway", "SmsGateway", "EmailGateway"]
