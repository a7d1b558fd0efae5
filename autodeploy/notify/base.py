"""Abstract mail transport base class."""

from __future__ import annotations

from abc import ABC, abstractmethod


class MailTransport(ABC):
    @abstractmethod
    async def send(self, recipients: list[str], subject: str, body: str) -> None:
        """Deliver one message. Raises NotificationDeliveryFailed on failure."""
        ...
