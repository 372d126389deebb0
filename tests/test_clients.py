from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError
from httplib2 import Response

from compositor.drive import DriveClient
from compositor.errors import TransportError
from compositor.sheets import SheetClient


def http_error(status: int = 500) -> HttpError:
    return HttpError(Response({"status": status}), b"boom")


def sheet_service(values_by_range):
    service = MagicMock()
    values_api = service.spreadsheets.return_value.values.return_value

    def get(spreadsheetId, range):
        request = MagicMock()
        request.execute.return_value = {"values": values_by_range.get(range, [])}
        return request

    values_api.get.side_effect = get
    return service, values_api


class TestSheetClient:
    def test_catalogue_drops_incomplete_rows(self):
        service, _ = sheet_service(
            {
                "Sheet1!R2:S": [["Beach", "f1"], ["", "f2"], ["City"]],
                "Sheet1!M2:P": [["main", "demo", "k", "s"], ["half", "demo"]],
                "Sheet1!J2:K": [["Stickers", "f3"]],
            }
        )

        catalogue = SheetClient(service, "sheet-id").load_catalogue()

        assert [(b.name, b.folder_id) for b in catalogue.backgrounds] == [("Beach", "f1")]
        assert [s.name for s in catalogue.servers] == ["main"]
        assert catalogue.servers[0].cloud_name == "demo"
        assert [e.folder_id for e in catalogue.elements] == ["f3"]

    def test_mark_used_writes_single_cell(self):
        service, values_api = sheet_service({})

        SheetClient(service, "sheet-id").mark_used(7, "a@x.com")

        values_api.update.assert_called_once_with(
            spreadsheetId="sheet-id",
            range="Sheet1!F7",
            valueInputOption="RAW",
            body={"values": [["a@x.com"]]},
        )

    def test_promo_cells(self):
        service, _ = sheet_service(
            {
                "Sheet1!G1": [["[marquee] Big sale"]],
                "Sheet1!G2:G3": [["https://img"], ["https://go"]],
            }
        )
        client = SheetClient(service, "sheet-id")

        assert client.read_promo_text() == "[marquee] Big sale"
        assert client.read_promo_banner() == ("https://img", "https://go")

    def test_http_error_becomes_transport_error(self):
        service = MagicMock()
        service.spreadsheets.return_value.values.return_value.get.return_value.execute.side_effect = (
            http_error(403)
        )

        with pytest.raises(TransportError):
            SheetClient(service, "sheet-id").read_license_rows()


class TestDriveClient:
    def test_list_folder_follows_pages(self):
        service = MagicMock()
        pages = [
            {"files": [{"id": "1", "name": "a.png", "mimeType": "image/png"}], "nextPageToken": "t"},
            {"files": [{"id": "2", "name": "b.txt", "mimeType": "text/plain"}]},
        ]
        service.files.return_value.list.return_value.execute.side_effect = pages

        files = DriveClient(service).list_folder("folder")

        assert [(f.id, f.mime_type) for f in files] == [("1", "image/png"), ("2", "text/plain")]
        calls = service.files.return_value.list.call_args_list
        assert calls[0].kwargs["q"] == "'folder' in parents"
        assert calls[1].kwargs["pageToken"] == "t"

    def test_fetch_binary(self):
        service = MagicMock()
        service.files.return_value.get_media.return_value.execute.return_value = b"img"

        assert DriveClient(service).fetch_binary("id1") == b"img"
        service.files.return_value.get_media.assert_called_once_with(fileId="id1")

    def test_fetch_failure_is_transport_error(self):
        service = MagicMock()
        service.files.return_value.get_media.return_value.execute.side_effect = http_error()

        with pytest.raises(TransportError):
            DriveClient(service).fetch_binary("id1")

    def test_socket_failure_is_transport_error(self):
        service = MagicMock()
        service.files.return_value.get_media.return_value.execute.side_effect = (
            ConnectionResetError("reset by peer")
        )

        with pytest.raises(TransportError):
            DriveClient(service).fetch_binary("id1")
