"""Confirmation code delivery."""

from .credentials import Credentials, CredentialsStore
from .service import (
    IqSmsMessagingService,
    MessagingService,
    generate_confirmation_code,
    validate_phone_number,
)

__all__ = [
    'Credentials',
    'CredentialsStore',
    'IqSmsMessagingService',
    'MessagingService',
    'generate_confirmation_code',
    'validate_phone_number',
]
