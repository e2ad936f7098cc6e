"""
Data carried through one signing call.
All records are immutable and live no longer than the call that made them.
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict

from .config import (
    ALL_IDENTITY_FIELDS,
    PROVIDER_STATUS_ACCEPTED,
    REQUIRED_IDENTITY_FIELDS,
)
from .errors import IdentityError


@dataclass(frozen=True)
class Identity:
    """
    Signer identity.

    Name parts and phone number are always required; passport fields and
    email are required only when full validation is requested.
    """
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    passport_number: str = ""
    passport_series: str = ""
    passport_unite_code: str = ""
    passport_issued_by: str = ""
    passport_issued_date: str = ""
    passport_birthday_date: str = ""
    passport_birthday_place: str = ""
    passport_registration_address: str = ""
    passport_registration_date: str = ""
    email: str = ""
    phone_number: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.middle_name} {self.last_name}"

    def has_required_fields(self) -> bool:
        return all(getattr(self, name) for name in REQUIRED_IDENTITY_FIELDS)

    def has_all_fields(self) -> bool:
        return all(getattr(self, name) for name in ALL_IDENTITY_FIELDS)

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary keyed by field name, in template order."""
        return {name: getattr(self, name) for name in ALL_IDENTITY_FIELDS}

    def to_json(self, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=4 if pretty else None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Identity':
        """
        Build an identity from a mapping; unknown keys are ignored.

        Raises:
            IdentityError: If data is not a mapping
        """
        if not isinstance(data, dict):
            raise IdentityError(f"Expected a JSON object, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            values[key] = value if isinstance(value, str) else str(value)
        return cls(**values)

    @classmethod
    def from_json(cls, json_string: str) -> 'Identity':
        """
        Parse identity JSON.

        Raises:
            IdentityError: If the JSON is malformed
        """
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            raise IdentityError(f"JSON parsing failed: {e}")
        return cls.from_dict(data)


@dataclass(frozen=True)
class ConfirmationContext:
    """Phone, one-time code and signing time of one signing attempt."""
    phone_number: str
    confirmation_code: str
    signing_time: str


@dataclass(frozen=True)
class PreparedDocument:
    """Temporary populated HTML and its rendered PDF."""
    temp_html_path: Path
    temp_pdf_path: Path


@dataclass(frozen=True)
class StampPayload:
    """Everything the stamping backend draws on each page."""
    identity: Identity
    confirmation_code: str
    document_hash: str
    signing_time: str


@dataclass(frozen=True)
class SigningOutcome:
    """Result of a fully completed signature."""
    first_name: str
    middle_name: str
    last_name: str
    phone_number: str
    confirmation_code: str
    signing_time: str
    document_hash: str
    signed_pdf_path: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class ProviderSendingResult:
    """Messaging provider response to a send request."""
    status: str
    message_id: str = ""
    description: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == PROVIDER_STATUS_ACCEPTED


@dataclass(frozen=True)
class ProviderBalanceResult:
    balance: float = 0.0
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error
