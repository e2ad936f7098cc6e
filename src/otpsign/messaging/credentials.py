"""
Messaging provider credentials kept in a `KEY=value` file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from ..config import IQSMS_LOGIN_KEY, IQSMS_PASSWORD_KEY
from ..errors import CredentialsError


@dataclass(frozen=True)
class Credentials:
    login: str = ""
    password: str = field(default="", repr=False)

    @property
    def complete(self) -> bool:
        return bool(self.login and self.password)


class CredentialsStore:
    """
    Reads and updates the IQSMS_LOGIN / IQSMS_PASSWORD lines of a file.

    Other lines are preserved on save.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Credentials:
        """
        Raises:
            CredentialsError: If the file cannot be read
        """
        try:
            lines = self.path.read_text(encoding='utf-8').splitlines()
        except OSError as e:
            raise CredentialsError(f"Cannot open env file: {self.path}: {e}")

        login = ""
        password = ""
        login_prefix = f"{IQSMS_LOGIN_KEY}="
        password_prefix = f"{IQSMS_PASSWORD_KEY}="
        for line in lines:
            if line.startswith(login_prefix):
                login = line[len(login_prefix):]
            elif line.startswith(password_prefix):
                password = line[len(password_prefix):]
        return Credentials(login=login, password=password)

    def save(self, login: str, password: str):
        """
        Rewrite the credential lines, appending any that are missing.

        Raises:
            CredentialsError: If the file cannot be read or written, or a
                value contains a line break
        """
        if any(c in value for value in (login, password) for c in "\r\n"):
            raise CredentialsError("Credentials must not contain line breaks")

        try:
            content = self.path.read_text(encoding='utf-8') if self.path.exists() else ""
        except OSError as e:
            raise CredentialsError(f"Cannot open env file: {self.path}: {e}")

        updated: List[str] = []
        seen_login = False
        seen_password = False
        for line in content.splitlines():
            if line.startswith(f"{IQSMS_LOGIN_KEY}="):
                updated.append(f"{IQSMS_LOGIN_KEY}={login}")
                seen_login = True
            elif line.startswith(f"{IQSMS_PASSWORD_KEY}="):
                updated.append(f"{IQSMS_PASSWORD_KEY}={password}")
                seen_password = True
            else:
                updated.append(line)

        if not seen_login:
            updated.append(f"{IQSMS_LOGIN_KEY}={login}")
        if not seen_password:
            updated.append(f"{IQSMS_PASSWORD_KEY}={password}")

        try:
            self.path.write_text("\n".join(updated) + "\n", encoding='utf-8')
        except OSError as e:
            raise CredentialsError(f"Cannot write env file: {self.path}: {e}")
