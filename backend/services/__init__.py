"""
Business logic services for the LMS backend
"""
from .email_service import EmailService, email_service
from .push_service import PushService, push_service
from .payment_gateways import PaymentGatewayRouter, gateway_router

__all__ = ["EmailService", "email_service", "PushService", "push_service", "PaymentGatewayRouter", "gateway_router"]
