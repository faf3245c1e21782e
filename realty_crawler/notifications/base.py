"""Notification sink interface."""

from abc import ABC, abstractmethod
from typing import Mapping

from realty_crawler.items import Ad


class Notification(ABC):
    """Delivers batches of newly discovered ads.

    Iteration order over ``new_items`` is unspecified; implementations must
    not rely on it.
    """

    @abstractmethod
    def notify_on_new_items(self, new_items: Mapping[str, Ad]) -> None:
        ...

    def shutdown(self) -> None:
        """Release transport resources. Safe to call repeatedly."""
        pass
