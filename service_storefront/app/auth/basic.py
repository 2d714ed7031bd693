"""
HTTP Basic credential guard for storefront admin routes.
"""

from __future__ import annotations

import base64
import binascii
import hmac
from typing import Optional

from shared.logging import get_logger


BASIC_PREFIX = "Basic "


class BasicAuthGuard:
    """Checks a ``Basic base64(user:pass)`` header against configured admin credentials.

    Both halves are always compared, each in constant time, so neither the
    response nor its timing reveals which half was wrong.
    """

    def __init__(self, username: str, password: str, header_name: str = "Authorization") -> None:
        self.header_name = header_name
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self.logger = get_logger("storefront.auth.basic")

    def check(self, header_value: Optional[str]) -> bool:
        """Return True only for a well-formed header carrying the admin credentials."""
        credentials = self._decode(header_value)
        if credentials is None:
            self.logger.warning("Admin authentication rejected", reason="missing_or_malformed")
            return False

        username, password = credentials
        username_ok = hmac.compare_digest(username, self._username)
        password_ok = hmac.compare_digest(password, self._password)
        if username_ok & password_ok:
            return True

        self.logger.warning("Admin authentication rejected", reason="invalid_credentials")
        return False

    @staticmethod
    def _decode(header_value: Optional[str]) -> Optional[tuple]:
        if not header_value or not header_value.startswith(BASIC_PREFIX):
            return None

        try:
            decoded = base64.b64decode(header_value[len(BASIC_PREFIX):].strip(), validate=True)
        except (binascii.Error, ValueError):
            return None

        if b":" not in decoded:
            return None

        username, password = decoded.split(b":", 1)
        return username, password
