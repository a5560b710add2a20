from abc import ABC, abstractmethod

from external_events.models import Event


class BaseSource(ABC):
    """Abstract base class for external event sources."""

    #: Short identifier used in logs and in the merge order.
    name: str = ""

    @abstractmethod
    def fetch_events(self) -> list[Event]:
        """Fetches and normalises the source's current events.

        Returns:
            A list of canonical Event objects.
        """
        pass
