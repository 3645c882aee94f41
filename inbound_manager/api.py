import asyncio
import datetime
import logging
from collections.abc import Mapping, Sequence
from typing import Self, Optional, Union, Any, List, Tuple

import httpx
from httpx import Response, AsyncClient

from . import util
from .config import PanelConfig
from .endpoints import Inbounds, Xray

PrimitiveData = Optional[Union[str, int, float, bool]]
ParamType = Union[
    Mapping[str, Union[PrimitiveData, Sequence[PrimitiveData]]],
    List[Tuple[str, PrimitiveData]],
    str,
]
HeaderType = Union[Mapping[str, str], Sequence[Tuple[str, str]]]


class PanelClient:
    """Authenticated async client of the administration panel API.

    Every call returns the raw ``httpx.Response`` once its envelope reports
    success. A locked database is retried ``max_retries`` times; an expired
    session (401) triggers one re-login. Anything else raises.
    """

    def __init__(self, base_url: str,
                 *, username: str | None = None, password: str | None = None,
                 session_duration: int = 3600,
                 transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.session: AsyncClient | None = None
        self.base_url: str = base_url.rstrip("/")
        self.session_start: float | None = None
        self.session_duration: int = session_duration
        self.username: str | None = username
        self.password: str | None = password
        self.token: str | None = None
        self.max_retries: int = 5
        self.retry_delay: float = 1
        self.transport = transport

        self.inbounds_end = Inbounds(self)
        self.xray_end = Xray(self)

    @classmethod
    def from_config(cls, config: PanelConfig, **kwargs: Any) -> Self:
        return cls(config.base_url, username=config.username, password=config.password, **kwargs)

    def _session_expired(self) -> bool:
        now: float = datetime.datetime.now().timestamp()
        return self.session_start is None or now - self.session_start > self.session_duration

    async def _request(self, method: str, url: httpx.URL | str, *, envelope: bool = True,
                       **kwargs: Any) -> Response:
        if self.session is None:
            raise RuntimeError("Session is not initialized")

        relogged = False
        for attempt in range(self.max_retries):
            resp = await self.session.request(method, url, **kwargs)
            if resp.status_code == 401 and not relogged and self.username is not None:
                await self.login()
                relogged = True
                continue
            if resp.status_code != 200:
                raise RuntimeError(f"Server returned status code {resp.status_code}")
            if not envelope:
                return resp

            status = util.check_response_validity(resp)
            if status == "OK":
                return resp
            if status == "DB_LOCKED":
                if attempt + 1 >= self.max_retries:
                    raise util.DBLockedError("Database locked: max retries exceeded")
                await asyncio.sleep(self.retry_delay)
                continue
            raise RuntimeError(f"Panel rejected the request: {resp.json().get('msg')}")
        raise util.DBLockedError("Database locked: max retries exceeded")

    async def safe_get(self, url: httpx.URL | str, *,
                       params: ParamType | None = None,
                       headers: HeaderType | None = None,
                       envelope: bool = True) -> Response:
        return await self._request("GET", url, params=params, headers=headers, envelope=envelope)

    async def safe_post(self, url: httpx.URL | str, *,
                        json: Any | None = None,
                        params: ParamType | None = None,
                        headers: HeaderType | None = None) -> Response:
        return await self._request("POST", url, json=json, params=params, headers=headers)

    async def login(self, username: str | None = None, password: str | None = None) -> None:
        if self.username and username:
            raise ValueError("You must provide a username either when initing the client or to the function, not both")
        if self.password and password:
            raise ValueError("You must provide a password either when initing the client or to the function, not both")
        if self.session is None:
            raise RuntimeError("Session is not initialized")

        payload = {
            "username": username or self.username,
            "password": password or self.password,
        }
        resp = await self.session.post("/auth/login", json=payload)
        if resp.status_code != 200:
            raise RuntimeError(f"Error: server returned a status code of {resp.status_code}")
        resp_json = resp.json()
        if not resp_json.get("success"):
            raise ValueError("Error: wrong credentials or failed login")

        self.token = resp_json["obj"]["token"]
        self.session.headers["Authorization"] = f"Bearer {self.token}"
        self.session_start = datetime.datetime.now().timestamp()
        logging.info("Logged in to the panel")

    def connect(self) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        self.session = AsyncClient(base_url=self.base_url, transport=self.transport, headers=headers)

    async def disconnect(self) -> None:
        if self.session is not None:
            await self.session.aclose()
            self.session = None

    async def __aenter__(self) -> Self:
        self.connect()
        if self.username is not None and self._session_expired():
            try:
                await self.login()
            except (ValueError, RuntimeError, httpx.HTTPError):
                await self.disconnect()
                raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
