"""
Runtime service configuration.

The configuration file is a sectionless `key=value` file:

    html_template_path=templates/agreement.html
    message_template_path=templates/sms.txt
    env_file_path=secrets/iqsms.env
    log_file_path=logs/service.log
    temp_dir=tmp
    fonts_path=fonts
    output_pdf_dir=signed
    auth_token=change-me
"""

import configparser
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ConfigError

_SECTION = "service"

# file key -> ServiceConfig attribute
_FILE_KEYS = {
    'html_template_path': 'html_template_path',
    'message_template_path': 'message_template_path',
    'env_file_path': 'credentials_path',
    'log_file_path': 'log_file_path',
    'temp_dir': 'temp_dir',
    'fonts_path': 'fonts_dir',
    'output_pdf_dir': 'output_dir',
    'auth_token': 'auth_token',
}

_REQUIRED = (
    'html_template_path',
    'message_template_path',
    'credentials_path',
    'log_file_path',
    'temp_dir',
    'output_dir',
    'auth_token',
)


@dataclass(frozen=True)
class ServiceConfig:
    """
    Immutable snapshot of the signing service configuration.

    Attributes:
        html_template_path: HTML agreement template with identity placeholders
        message_template_path: SMS text template containing `{code}`
        credentials_path: KEY=value file with the messaging provider login
        log_file_path: Append-only service log
        temp_dir: Directory for per-call temporary artifacts
        output_dir: Directory receiving fully stamped documents
        auth_token: Token every caller must present
        fonts_dir: Optional directory with a TTF font for the stamp
    """
    html_template_path: str
    message_template_path: str
    credentials_path: str
    log_file_path: str
    temp_dir: str
    output_dir: str
    auth_token: str = field(repr=False)
    fonts_dir: Optional[str] = None

    def with_changes(self, **changes: Any) -> 'ServiceConfig':
        """Return a copy with the given attributes replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (the auth token is masked)."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['auth_token'] = '***'
        return data


def parse_config_text(text: str) -> ServiceConfig:
    """
    Parse configuration file content.

    Args:
        text: Sectionless key=value content

    Returns:
        ServiceConfig

    Raises:
        ConfigError: If the content is malformed or required keys are missing
    """
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read_string(f"[{_SECTION}]\n{text}")
    except configparser.Error as e:
        raise ConfigError(f"Malformed configuration: {e}")

    values: Dict[str, str] = {}
    for key, attribute in _FILE_KEYS.items():
        value = parser.get(_SECTION, key, fallback='').strip()
        if value:
            values[attribute] = value

    missing = [name for name in _REQUIRED if name not in values]
    if missing:
        raise ConfigError(f"Missing configuration keys: {', '.join(missing)}")

    return ServiceConfig(**values)


def load_config(path: Union[str, Path]) -> ServiceConfig:
    """
    Load configuration from a file.

    Raises:
        ConfigError: If the file cannot be read or is invalid
    """
    try:
        text = Path(path).read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigError(f"Cannot open config file: {path}: {e}")
    return parse_config_text(text)
