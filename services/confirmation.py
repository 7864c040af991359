from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class ConfirmationRequest:
    """Pending destructive action waiting for the user's answer.

    The caller shows `prompt`, then calls confirm() or decline(). Only the
    first answer counts; declining does nothing.
    """

    def __init__(self, prompt: str, action: Callable[[], None]) -> None:
        self.prompt = prompt
        self._action = action
        self.resolved = False
        self.confirmed: bool | None = None

    def confirm(self) -> bool:
        """Run the action. Returns False if the request was already answered."""
        if self.resolved:
            return False
        self.resolved = True
        self.confirmed = True
        self._action()
        return True

    def decline(self) -> None:
        if self.resolved:
            return
        self.resolved = True
        self.confirmed = False
        logger.info("Declined: %s", self.prompt)
