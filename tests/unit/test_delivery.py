import pytest
from pathlib import Path

from client_ledger.delivery.base import deliver
from client_ledger.delivery.filesystem import DirectoryDelivery
from client_ledger.exceptions import DeliveryError, ShareUnavailableError
from client_ledger.reports.document import RenderedDocument

@pytest.fixture
def document() -> RenderedDocument:
    return RenderedDocument(filename="Dinix_Report_2024-06-01.csv", content=b"a,b\n", mime_type="text/csv")

@pytest.mark.unit
class TestDeliver:
    """Test share with download fallback"""

    def test_share_succeeds(self, mocker, document):
        delivery = mocker.Mock()

        result = deliver(delivery, document, "Report", "text")

        assert result is None
        delivery.share.assert_called_once_with(document, "Report", "text")
        delivery.download.assert_not_called()

    def test_falls_back_to_download(self, mocker, document):
        # Arrange
        delivery = mocker.Mock()
        delivery.share.side_effect = ShareUnavailableError("declined")
        delivery.download.return_value = Path("exports/x.csv")

        # Act
        result = deliver(delivery, document, "Report")

        # Assert
        assert result == Path("exports/x.csv")
        delivery.download.assert_called_once_with(document)

    def test_other_errors_propagate(self, mocker, document):
        delivery = mocker.Mock()
        delivery.share.side_effect = RuntimeError("bug")

        with pytest.raises(RuntimeError):
            deliver(delivery, document, "Report")
        delivery.download.assert_not_called()


@pytest.mark.unit
class TestDirectoryDelivery:

    def test_download_writes_file(self, tmp_path, document):
        delivery = DirectoryDelivery(tmp_path / "out")

        path = delivery.download(document)

        assert path == tmp_path / "out" / document.filename
        assert path.read_bytes() == b"a,b\n"

    def test_share_is_unavailable(self, tmp_path, document):
        with pytest.raises(ShareUnavailableError):
            DirectoryDelivery(tmp_path).share(document, "t", "x")

    def test_write_failure(self, tmp_path, document):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(DeliveryError):
            DirectoryDelivery(blocker).download(document)

    def test_deliver_through_directory(self, tmp_path, document):
        path = deliver(DirectoryDelivery(tmp_path), document, "Report")

        assert path.exists()
