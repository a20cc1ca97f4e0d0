"""Store client - Supabase (PostgREST) over HTTP.

One module-level client per process, created by init_db() at job start and
released by close_db(), mirroring a connection pool lifecycle.
"""

from typing import Any, Dict, Iterable, List, Optional

import httpx
from loguru import logger

from lib.settings import ConfigError, Settings


class StoreError(RuntimeError):
    """The store rejected a request or could not be reached."""


class StoreClient:
    """Thin PostgREST client for the venue tables."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/") + "/rest/v1"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _check(resp: httpx.Response, action: str) -> None:
        if resp.status_code >= 400:
            raise StoreError(f"{action} failed: HTTP {resp.status_code} {resp.text[:300]}")

    @staticmethod
    def _eq_filters(match: Dict[str, Any]) -> Dict[str, str]:
        return {col: f"eq.{val}" for col, val in match.items()}

    async def _send(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{action} failed: {type(e).__name__}: {e}") from e
        self._check(resp, action)
        return resp

    async def ping(self) -> None:
        """Cheap reachability + credentials check."""
        await self._send("GET", "/venues", "ping", params={"select": "id", "limit": "1"})

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, str]] = None,
        order: Optional[str] = None,
        page_size: int = 1000,
    ) -> List[Dict[str, Any]]:
        """Read all matching rows, paging with limit/offset.

        filters use PostgREST operators, e.g. {"city": "eq.Hobart"}.
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            params: Dict[str, str] = {"select": columns, "limit": str(page_size), "offset": str(offset)}
            if filters:
                params.update(filters)
            if order:
                params["order"] = order
            resp = await self._send("GET", f"/{table}", f"select {table}", params=params)
            page = resp.json()
            rows.extend(page)
            if len(page) < page_size:
                return rows
            offset += page_size

    async def upsert(
        self,
        table: str,
        rows: Iterable[Dict[str, Any]],
        on_conflict: Optional[str] = None,
    ) -> None:
        payload = list(rows)
        if not payload:
            return
        params = {"on_conflict": on_conflict} if on_conflict else None
        await self._send(
            "POST",
            f"/{table}",
            f"upsert {table}",
            params=params,
            json=payload,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> int:
        """PATCH rows matching all equality filters. Returns rows affected."""
        if not match:
            raise ValueError("update requires at least one match column")
        resp = await self._send(
            "PATCH",
            f"/{table}",
            f"update {table}",
            params=self._eq_filters(match),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return len(resp.json() or [])

    async def delete(self, table: str, match: Dict[str, Any]) -> int:
        if not match:
            raise ValueError("delete requires at least one match column")
        resp = await self._send(
            "DELETE",
            f"/{table}",
            f"delete {table}",
            params=self._eq_filters(match),
            headers={"Prefer": "return=representation"},
        )
        return len(resp.json() or [])


# Global client
_store: Optional[StoreClient] = None


async def init_db(settings: Optional[Settings] = None) -> StoreClient:
    """Initialize the store client once at startup.

    Raises:
        ConfigError: credentials missing
        StoreError: store unreachable or credentials rejected
    """
    global _store
    if _store is None:
        settings = settings or Settings.from_env()
        settings.require_store()
        client = StoreClient(settings.supabase_url, settings.supabase_key)
        try:
            await client.ping()
        except StoreError:
            await client.close()
            raise
        logger.debug(f"Connected to store at {client.base_url}")
        _store = client
    return _store


def get_store() -> StoreClient:
    if _store is None:
        raise ConfigError("Store not initialized; call init_db() first")
    return _store


def set_store(client: Optional[StoreClient]) -> None:
    """Install a client directly (tests, alternate transports)."""
    global _store
    _store = client


async def close_db():
    """Release the HTTP client."""
    global _store
    if _store:
        await _store.close()
        _store = None
