"""
Configuration constants for otpsign.
These are immutable system constants, not runtime configuration
(see settings.ServiceConfig for the latter).
"""

# Cryptographic binding
HASH_BUFFER_SIZE = 8192
HASH_FIELD_DELIMITER = "|"

# Time constants (signing times and log records are Moscow time)
TIMEZONE_OFFSET_HOURS = 3
TIMEZONE_OFFSET_MINUTES = 0
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Confirmation codes
DEFAULT_CODE_LENGTH = 4
CONTROL_CODE_LOG_ON = "LOG_ON"
CONTROL_CODE_LOG_OFF = "LOG_OFF"
CONTROL_CODES = frozenset([CONTROL_CODE_LOG_ON, CONTROL_CODE_LOG_OFF])

# Template cache
DEFAULT_TEMPLATE_CACHE_SIZE = 100

# Temporary artifact naming
TEMP_HTML_PREFIX = "template_"
TEMP_PDF_PREFIX = "temp_document_"
SIGNED_PDF_PREFIX = "signed_document_"

# Messaging provider (IQSMS)
IQSMS_SEND_URL = "https://api.iqsms.ru/messages/v2/send/"
IQSMS_STATUS_URL = "https://api.iqsms.ru/messages/v2/status/"
IQSMS_BALANCE_URL = "https://api.iqsms.ru/messages/v2/balance/"
IQSMS_LOGIN_KEY = "IQSMS_LOGIN"
IQSMS_PASSWORD_KEY = "IQSMS_PASSWORD"
PROVIDER_STATUS_ACCEPTED = "accepted"
PROVIDER_STATUS_ERROR = "error"
PROVIDER_UNKNOWN_STATUS = "UNKNOWN_STATUS"
MESSAGE_CODE_PLACEHOLDER = "{code}"
MESSAGING_TIMEOUT_SECONDS = 10.0
MESSAGING_CONNECT_TIMEOUT_SECONDS = 5.0
MESSAGING_RELOAD_INTERVAL_SECONDS = 300
MESSAGING_USER_AGENT = "MessageService/1.0"

# Identity fields
REQUIRED_IDENTITY_FIELDS = (
    "first_name",
    "middle_name",
    "last_name",
    "phone_number",
)
ALL_IDENTITY_FIELDS = (
    "first_name",
    "middle_name",
    "last_name",
    "passport_number",
    "passport_series",
    "passport_unite_code",
    "passport_issued_by",
    "passport_issued_date",
    "passport_birthday_date",
    "passport_birthday_place",
    "passport_registration_address",
    "passport_registration_date",
    "email",
    "phone_number",
)
