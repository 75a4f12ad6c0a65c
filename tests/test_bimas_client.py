from __future__ import annotations

from dataclasses import dataclass

import pytest
import requests

from jadwalshalat.bimas_client import BimasClient
from jadwalshalat.errors import ParseError, TransportError
from jadwalshalat.regions import Region

PROVINCE_PAGE = """
<html><body>
<select id="search_prov" name="search_prov">
  <option value="tok-aceh">ACEH</option>
  <option value="tok-dki">DKI JAKARTA</option>
</select>
</body></html>
"""

REGENCIES = {
    "tok-aceh": '<option value="tok-acbar">KAB. ACEH BARAT</option>'
    '<option value="tok-bna">KOTA BANDA ACEH</option>',
    "tok-dki": '<option value="tok-jkt">KOTA JAKARTA</option>',
}


@dataclass
class FakeResponse:
    status_code: int
    payload: object = None
    text: str = ""

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, handler) -> None:
        self.headers: dict[str, str] = {}
        self.calls: list[tuple[str, str, object, int]] = []
        self._handler = handler

    def request(self, method: str, url: str, *, data=None, timeout: int):
        self.calls.append((method, url, data, timeout))
        result = self._handler(method, url, data)
        if isinstance(result, Exception):
            raise result
        return result


def _site(method: str, url: str, data):
    if url == "http://bimas.test":
        return FakeResponse(200, text="<html></html>")
    if url.endswith("/jadwalshalat"):
        return FakeResponse(200, text=PROVINCE_PAGE)
    if url.endswith("/ajax/getKabkoshalat"):
        return FakeResponse(200, text=REGENCIES[data["x"]])
    raise AssertionError(f"Unexpected request {method} {url}")


def test_fetch_all_walks_provinces_then_regencies() -> None:
    session = FakeSession(_site)
    client = BimasClient(base_url="http://bimas.test/", timeout_seconds=3, session=session)

    regions = client.fetch_all()

    assert regions == [
        Region("ACEH", "tok-aceh", "KAB. ACEH BARAT", "tok-acbar"),
        Region("ACEH", "tok-aceh", "KOTA BANDA ACEH", "tok-bna"),
        Region("DKI JAKARTA", "tok-dki", "KOTA JAKARTA", "tok-jkt"),
    ]
    assert session.calls[0][:2] == ("GET", "http://bimas.test")
    assert all(call[3] == 3 for call in session.calls)
    assert session.headers["Referer"] == "http://bimas.test/jadwalshalat"


def test_session_is_warmed_up_once() -> None:
    session = FakeSession(_site)
    client = BimasClient(base_url="http://bimas.test", session=session)

    client.fetch_all()
    client.fetch_all()

    homepage_calls = [call for call in session.calls if call[1] == "http://bimas.test"]
    assert len(homepage_calls) == 1


def test_fetch_all_without_selector_is_parse_error() -> None:
    def handler(method, url, data):
        return FakeResponse(200, text="<html><body>maintenance</body></html>")

    client = BimasClient(base_url="http://bimas.test", session=FakeSession(handler))

    with pytest.raises(ParseError):
        client.fetch_all()


def test_fetch_month_posts_tokens_and_returns_data() -> None:
    month = {"2024-03-15": {"tanggal": "Jumat, 15/03/2024", "subuh": "04:40"}}

    def handler(method, url, data):
        if url.endswith("/ajax/getShalatbln"):
            return FakeResponse(200, {"status": 1, "message": "Success", "data": month})
        return FakeResponse(200, text="")

    session = FakeSession(handler)
    client = BimasClient(base_url="http://bimas.test", session=session)
    region = Region("DKI JAKARTA", "tok-dki", "KOTA JAKARTA", "tok-jkt")

    payload = client.fetch_month(region, 2024, 3)

    assert payload == month
    method, url, data, _ = session.calls[-1]
    assert method == "POST"
    assert data == {"x": "tok-dki", "y": "tok-jkt", "bln": "3", "thn": "2024"}


def test_fetch_month_without_data_is_parse_error() -> None:
    def handler(method, url, data):
        return FakeResponse(200, {"status": 0, "message": "Data tidak ditemukan"})

    client = BimasClient(base_url="http://bimas.test", session=FakeSession(handler))

    with pytest.raises(ParseError):
        client.fetch_month(Region("A", "x", "B", "y"), 2024, 3)


def test_fetch_month_invalid_json_is_parse_error() -> None:
    def handler(method, url, data):
        return FakeResponse(200, ValueError("not json"))

    client = BimasClient(base_url="http://bimas.test", session=FakeSession(handler))

    with pytest.raises(ParseError):
        client.fetch_month(Region("A", "x", "B", "y"), 2024, 3)


def test_network_error_is_transport_error() -> None:
    def handler(method, url, data):
        return requests.ConnectionError("offline")

    session = FakeSession(handler)
    client = BimasClient(base_url="http://bimas.test", session=session)

    with pytest.raises(TransportError):
        client.fetch_all()

    assert len(session.calls) == 1


def test_non_200_status_is_transport_error() -> None:
    def handler(method, url, data):
        return FakeResponse(503, text="busy")

    client = BimasClient(base_url="http://bimas.test", session=FakeSession(handler))

    with pytest.raises(TransportError):
        client.fetch_all()
