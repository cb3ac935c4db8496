"""
Email sender port (interface).
"""
from abc import ABC, abstractmethod
from typing import Any, Dict


class EmailSender(ABC):
    """Sends templated transactional email."""

    @abstractmethod
    def send(self, template: str, to: str, data: Dict[str, Any]) -> bool:
        """
        Render and send a template.

        Args:
            template: Template name (welcome, trialEnding, ...)
            to: Recipient address
            data: Template variables

        Returns:
            True when the message was accepted for delivery
        """
        pass
