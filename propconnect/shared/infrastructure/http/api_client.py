"""HTTP client adapter for the PropConnect REST backend.

Stateless apart from the pooled ``httpx.AsyncClient``: every call names its
own bearer token, so the same client serves every principal kind.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from propconnect.shared.core.errors import ApiError, ErrorKind, extract_error_details, infer_error_kind

logger = logging.getLogger(__name__)


def unwrap_list(body: Any, key: str = "data") -> List[Dict[str, Any]]:
    """Return the row list from either a bare list or a ``{key: [...]}`` envelope."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    return []


class ApiClient:
    """Async JSON client attaching bearer tokens and mapping failures to ``ApiError``."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @staticmethod
    def _headers(token: Optional[str]) -> Dict[str, str]:
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        files: Any = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` when empty).

        Raises:
            ApiError: On transport failure or any non-2xx response
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}
        logger.debug(f"{method} {path}")
        try:
            response = await self._client.request(
                method,
                path,
                headers=self._headers(token),
                json=json,
                params=params,
                files=files,
                data=data,
            )
        except httpx.HTTPError as exc:
            logger.warning(f"{method} {path} failed: {exc}")
            raise ApiError(str(exc) or "Network error", kind=ErrorKind.NETWORK) from exc

        body = self._decode(response)
        if response.is_success:
            return body

        message, code = extract_error_details(body)
        kind = infer_error_kind(response.status_code, code, message)
        logger.info(f"{method} {path} -> {response.status_code} ({kind.value})")
        raise ApiError(
            message or "",
            kind=kind,
            status_code=response.status_code,
            code=code,
            body=body,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get(self, path: str, *, token: Optional[str] = None, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.request("GET", path, token=token, params=params)

    async def post(self, path: str, json: Any = None, *, token: Optional[str] = None) -> Any:
        return await self.request("POST", path, token=token, json=json)

    async def put(self, path: str, json: Any = None, *, token: Optional[str] = None) -> Any:
        return await self.request("PUT", path, token=token, json=json)

    async def delete(self, path: str, *, token: Optional[str] = None) -> Any:
        return await self.request("DELETE", path, token=token)

    async def upload(
        self,
        path: str,
        filename: str,
        content: bytes,
        content_type: str,
        *,
        token: Optional[str] = None,
        field: str = "file",
        data: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Multipart upload of a single file plus optional form fields."""
        return await self.request(
            "POST",
            path,
            token=token,
            files={field: (filename, content, content_type)},
            data=data,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
