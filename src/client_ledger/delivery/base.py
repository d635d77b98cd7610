import logging
from abc import ABC, abstractmethod
from pathlib import Path

from client_ledger.exceptions import DeliveryError
from client_ledger.reports.document import RenderedDocument

logger = logging.getLogger(__name__)


class Delivery(ABC):
    """
    Abstract delivery collaborator.

    Rendering never decides how an artifact leaves the process; it hands a
    RenderedDocument to one of these.
    """

    @abstractmethod
    def download(self, document: RenderedDocument) -> Path:
        """
        Hand the artifact over as a named file.

        Args:
            document: Rendered artifact

        Returns:
            Where the file ended up
        """
        pass

    @abstractmethod
    def share(self, document: RenderedDocument, title: str, text: str) -> None:
        """
        Offer the artifact through a native share mechanism.

        Raises:
            ShareUnavailableError: If sharing is declined or unsupported
        """
        pass


def deliver(delivery: Delivery, document: RenderedDocument, title: str, text: str = "") -> Path | None:
    """
    Share the artifact, falling back to a download if sharing fails.

    Returns:
        The downloaded path, or None when the share went through
    """
    try:
        delivery.share(document, title, text)
        logger.info("Shared %s", document.filename)
        return None
    except DeliveryError as e:
        logger.warning("Share failed for %s (%s), downloading instead", document.filename, e)
        return delivery.download(document)
