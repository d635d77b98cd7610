import logging
from pathlib import Path

from client_ledger.delivery.base import Delivery
from client_ledger.exceptions import DeliveryError, ShareUnavailableError
from client_ledger.reports.document import RenderedDocument

logger = logging.getLogger(__name__)


class DirectoryDelivery(Delivery):
    """
    Writes artifacts into an output directory.

    There is no share sheet on a terminal, so ``share`` always reports
    itself unavailable and callers fall back to ``download``.
    """

    def __init__(self, output_dir: Path | str = "exports"):
        self.output_dir = Path(output_dir)

    def download(self, document: RenderedDocument) -> Path:
        """Write the document, replacing any file of the same name"""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            target = self.output_dir / document.filename
            target.write_bytes(document.content)
        except OSError as e:
            raise DeliveryError(f"Could not write {document.filename}: {e}") from e

        logger.info("Saved %s (%d bytes)", target, len(document))
        return target

    def share(self, document: RenderedDocument, title: str, text: str) -> None:
        raise ShareUnavailableError("Sharing is not supported from the command line")
