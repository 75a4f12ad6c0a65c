from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
import requests

from jadwalshalat.errors import ParseError, TransportError
from jadwalshalat.regions import Region

DEFAULT_BASE_URL = "https://bimasislam.kemenag.go.id"

_BROWSER_HEADERS = {
    "Accept": "*/*,",
    "Accept-Language": "en-US,en;q=0.8",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "Sec-GPC": "1",
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/117.0.0.0 Safari/537.36"
    ),
    "X-Requested-With": "XMLHttpRequest",
}


class BimasClient:
    """Region and schedule source backed by the Bimas Islam website.

    The site only answers its ajax endpoints for sessions that loaded the
    homepage first, so the session is warmed up before the first real call.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: int = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(_BROWSER_HEADERS)
        self._session.headers.update(
            {
                "Origin": self._base_url,
                "Referer": f"{self._base_url}/jadwalshalat",
            }
        )
        self._warmed_up = False
        self._logger = logging.getLogger(self.__class__.__name__)

    def fetch_all(self) -> List[Region]:
        page = self._request("GET", "/jadwalshalat")
        soup = BeautifulSoup(page.text, "html.parser")
        select = soup.find("select", id="search_prov")
        if select is None:
            raise ParseError("Province selector not found on schedule page")

        regions: List[Region] = []
        for option in select.find_all("option"):
            province = option.get_text()
            province_token = option.get("value", "")
            regions.extend(self._fetch_regencies(province, province_token))
        self._logger.info("Fetched %s regions", len(regions))
        return regions

    def fetch_month(self, region: Region, year: int, month: int) -> Dict[str, Any]:
        response = self._request(
            "POST",
            "/ajax/getShalatbln",
            data={
                "x": region.province_token,
                "y": region.regency_token,
                "bln": str(month),
                "thn": str(year),
            },
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ParseError("Schedule endpoint returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ParseError("Schedule response must be a JSON object")

        data = payload.get("data")
        if not isinstance(data, dict):
            message = payload.get("message", "missing data")
            raise ParseError(f"Schedule response has no monthly data: {message}")
        return data

    def _fetch_regencies(self, province: str, province_token: str) -> List[Region]:
        response = self._request(
            "POST", "/ajax/getKabkoshalat", data={"x": province_token}
        )
        fragment = BeautifulSoup(response.text, "html.parser")
        return [
            Region(
                province=province,
                province_token=province_token,
                regency=option.get_text(),
                regency_token=option.get("value", ""),
            )
            for option in fragment.find_all("option")
        ]

    def _warm_up(self) -> None:
        if self._warmed_up:
            return
        # The homepage sets the cookies the ajax endpoints check for.
        self._send("GET", self._base_url)
        self._warmed_up = True

    def _request(
        self, method: str, path: str, data: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        self._warm_up()
        return self._send(method, f"{self._base_url}{path}", data=data)

    def _send(
        self, method: str, url: str, data: Optional[Dict[str, str]] = None
    ) -> requests.Response:
        try:
            response = self._session.request(
                method, url, data=data, timeout=self._timeout_seconds
            )
        except requests.RequestException as exc:
            raise TransportError(f"Request failed for {url}: {exc}") from exc

        if response.status_code != 200:
            self._logger.warning("Request to %s failed: %s", url, response.status_code)
            raise TransportError(f"{url} answered with status {response.status_code}")
        return response
