"""
SMS delivery of confirmation codes through the IQSMS HTTP API.

All provider calls are plain POSTs with query parameters and a
`status;payload` text response. Instances are not thread-safe; callers
serialize access (SigningPipeline holds a lock around every call).
"""

import re
import secrets
import string
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import httpx
import structlog

from ..config import (
    DEFAULT_CODE_LENGTH,
    IQSMS_BALANCE_URL,
    IQSMS_SEND_URL,
    IQSMS_STATUS_URL,
    MESSAGE_CODE_PLACEHOLDER,
    MESSAGING_CONNECT_TIMEOUT_SECONDS,
    MESSAGING_RELOAD_INTERVAL_SECONDS,
    MESSAGING_TIMEOUT_SECONDS,
    MESSAGING_USER_AGENT,
    PROVIDER_STATUS_ERROR,
    PROVIDER_UNKNOWN_STATUS,
)
from ..errors import CredentialsError, MessagingError
from ..models import ProviderBalanceResult, ProviderSendingResult
from .credentials import Credentials, CredentialsStore

logger = structlog.get_logger()

PHONE_PATTERN = re.compile(
    r"^(\+7|7|8)?[\s\-]?\(?[489][0-9]{2}\)?[\s\-]?[0-9]{3}[\s\-]?[0-9]{2}[\s\-]?[0-9]{2}$"
)


def generate_confirmation_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """
    Generate a random numeric code.

    Raises:
        ValueError: If length is less than 1
    """
    if length < 1:
        raise ValueError(f"Code length must be at least 1, got {length}")
    return ''.join(secrets.choice(string.digits) for _ in range(length))


def validate_phone_number(phone: str) -> bool:
    """Check a Russian mobile or landline number in common notations."""
    return PHONE_PATTERN.match(phone) is not None


class MessagingService(ABC):
    """Delivers confirmation codes and free-text messages to phones."""

    @abstractmethod
    def send_confirmation(self, phone: str, code: str) -> ProviderSendingResult:
        """Send the confirmation message containing code."""

    @abstractmethod
    def send_message(self, phone: str, text: str) -> ProviderSendingResult:
        """Send text as-is."""

    @abstractmethod
    def check_status(self, message_id: str) -> str:
        """Return the provider delivery status for a sent message."""

    @abstractmethod
    def set_credentials(self, login: str, password: str) -> bool:
        """Persist new provider credentials."""

    def generate_confirmation_code(self, length: int = DEFAULT_CODE_LENGTH) -> str:
        return generate_confirmation_code(length)

    def close(self):
        """Release network resources."""


class IqSmsMessagingService(MessagingService):
    """
    IQSMS provider client.

    Credentials and the message template are read at construction and
    re-read from disk at most every reload_interval seconds.
    """

    def __init__(
        self,
        credentials_path: Union[str, Path],
        message_template_path: Union[str, Path],
        timeout: float = MESSAGING_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
        reload_interval: float = MESSAGING_RELOAD_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the client.

        Args:
            credentials_path: KEY=value file with IQSMS_LOGIN / IQSMS_PASSWORD
            message_template_path: Text template containing `{code}`
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            reload_interval: Seconds between re-reads of credentials and template
            clock: Monotonic time source

        Raises:
            CredentialsError: If the credentials file cannot be read
            MessagingError: If the message template cannot be read
        """
        self.credentials_store = CredentialsStore(credentials_path)
        self.message_template_path = Path(message_template_path)
        self.reload_interval = reload_interval
        self._clock = clock

        self._credentials = self.credentials_store.load()
        self._template = self._load_template()
        self._last_reload = clock()

        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout, connect=MESSAGING_CONNECT_TIMEOUT_SECONDS),
            headers={"User-Agent": MESSAGING_USER_AGENT},
            transport=transport,
        )

    # ==================== Configuration ====================

    def _load_template(self) -> str:
        try:
            return self.message_template_path.read_text(encoding='utf-8')
        except OSError as e:
            raise MessagingError(
                f"Cannot open template file: {self.message_template_path}: {e}"
            )

    def _reload_if_needed(self):
        now = self._clock()
        if now - self._last_reload < self.reload_interval:
            return

        try:
            self._credentials = self.credentials_store.load()
            self._template = self._load_template()
        except MessagingError as e:
            logger.warning("messaging_reload_failed", error=str(e))
        self._last_reload = now

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    def set_credentials(self, login: str, password: str) -> bool:
        try:
            self.credentials_store.save(login, password)
            self._credentials = self.credentials_store.load()
        except CredentialsError as e:
            logger.error("messaging_credentials_update_failed", error=str(e))
            return False
        return True

    def set_credentials_path(self, path: Union[str, Path]) -> bool:
        if not str(path):
            return False
        self.credentials_store = CredentialsStore(path)
        self._force_reload()
        return True

    def set_template_path(self, path: Union[str, Path]) -> bool:
        if not str(path):
            return False
        self.message_template_path = Path(path)
        self._force_reload()
        return True

    def _force_reload(self):
        self._last_reload = self._clock() - self.reload_interval
        self._reload_if_needed()

    # ==================== Messages ====================

    def build_message(self, code: str) -> str:
        """Substitute the first `{code}` placeholder of the template."""
        self._reload_if_needed()
        return self._template.replace(MESSAGE_CODE_PLACEHOLDER, code, 1)

    def send_confirmation(self, phone, code):
        return self.send_message(phone, self.build_message(code))

    def send_message(self, phone, text):
        self._reload_if_needed()
        params = self._auth_params()
        params.update(phone=phone, text=text)

        log = logger.bind(phone=phone)
        try:
            response = self._post(IQSMS_SEND_URL, params)
        except httpx.HTTPError as e:
            log.error("sms_send_request_failed", error=str(e))
            return ProviderSendingResult(
                status=PROVIDER_STATUS_ERROR,
                description=f"exception:{e}",
            )

        status, sep, message_id = response.partition(';')
        if not sep:
            log.warning("sms_send_unexpected_response", response=response)
            return ProviderSendingResult(
                status=PROVIDER_STATUS_ERROR,
                description=f"unexpected response: {response}",
            )

        log.info("sms_send_response", status=status, message_id=message_id)
        return ProviderSendingResult(status=status, message_id=message_id)

    def check_status(self, message_id):
        self._reload_if_needed()
        params = self._auth_params()
        params['id'] = message_id
        try:
            return self._post(IQSMS_STATUS_URL, params)
        except httpx.HTTPError as e:
            logger.warning("sms_status_request_failed", message_id=message_id, error=str(e))
            return PROVIDER_UNKNOWN_STATUS

    def get_balance(self) -> ProviderBalanceResult:
        """
        Query the account balance.

        Expected response: `RUB;<amount>`.
        """
        self._reload_if_needed()
        try:
            response = self._post(IQSMS_BALANCE_URL, self._auth_params())
        except httpx.HTTPError as e:
            return ProviderBalanceResult(error=f"Error getting balance: {e}")

        if not response.startswith("RUB;"):
            return ProviderBalanceResult(error=f"Unexpected response format: {response}")

        amount = response[len("RUB;"):].splitlines()[0] if len(response) > 4 else ""
        if not amount:
            return ProviderBalanceResult(error="Invalid balance response format")
        try:
            return ProviderBalanceResult(balance=float(amount))
        except ValueError as e:
            return ProviderBalanceResult(error=f"Failed to parse balance: {e}")

    @staticmethod
    def validate_phone_number(phone: str) -> bool:
        return validate_phone_number(phone)

    # ==================== HTTP ====================

    def _auth_params(self) -> Dict[str, str]:
        return {
            'login': self._credentials.login,
            'password': self._credentials.password,
        }

    def _post(self, url: str, params: Dict[str, str]) -> str:
        response = self._client.post(url, params=params)
        response.raise_for_status()
        return response.text.strip()

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
