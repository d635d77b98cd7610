"""
Authorization checks for destructive ledger actions.

The PIN gate mirrors a confirmation prompt in the user interface. It is a
guard against slips, not a security control: the PIN lives in plain config
and nothing on the storage side enforces it. Anything that needs a real
trust boundary should plug in its own AuthorizationCheck.
"""
import hmac
import logging
from abc import ABC, abstractmethod
from typing import Optional

from client_ledger.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


class AuthorizationCheck(ABC):
    """Decides whether an edit or delete may go ahead"""

    @abstractmethod
    def authorize(self, action: str, pin: Optional[str]) -> None:
        """
        Args:
            action: What is being attempted, e.g. 'edit' or 'delete'
            pin: The code the user entered

        Raises:
            AuthorizationError: If the action is not allowed
        """
        pass


class PinGate(AuthorizationCheck):
    """Requires the configured short numeric code"""

    def __init__(self, pin: str):
        self._pin = str(pin)

    def authorize(self, action: str, pin: Optional[str]) -> None:
        if pin is None or not hmac.compare_digest(str(pin), self._pin):
            logger.warning("Incorrect PIN for %s", action)
            raise AuthorizationError("Incorrect PIN!")

    def __repr__(self) -> str:
        return "PinGate(****)"


class AllowAll(AuthorizationCheck):
    """No challenge at all"""

    def authorize(self, action: str, pin: Optional[str]) -> None:
        return None
