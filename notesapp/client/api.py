"""
Notes API Client.

Async HTTP client for the notes endpoints. Requests carry
X-Frontend-ID: client for log routing and the user's bearer token.
Every failure, transport errors included, surfaces as ApiRequestError
with the server's message when there is one.
"""

from typing import Any

import httpx

from notesapp.backend.core.config import get_server_base_url
from notesapp.backend.core.logging import get_logger, log_with_source
from notesapp.client.models import ClientNote, ImageFile

logger = get_logger(__name__)

NOTES_PATH = "/api/v1/notes"


class ApiRequestError(Exception):
    """A notes API call failed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


class NotesApiClient:
    """
    HTTP client for the notes API.

    Usage:
        api = NotesApiClient(token=id_token)
        notes = await api.list_notes()
        await api.update_note(3, "Title", "Body", image_action="clear")
        await api.close()
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the API client.

        Args:
            base_url: Backend base URL. If None, reads from config/settings/application.yaml.
            timeout: Request timeout in seconds. If None, reads from application.yaml.
            token: Identity provider token sent as a bearer token
            transport: Optional httpx transport (e.g. ASGITransport for in-process use)
        """
        if base_url is None or timeout is None:
            config_base_url, config_timeout = get_server_base_url()
            base_url = base_url or config_base_url
            timeout = timeout if timeout is not None else config_timeout

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.token = token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"X-Frontend-ID": "client"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Make an HTTP request and fail on any non-2xx status.

        Raises:
            ApiRequestError: On transport failure or an error response
        """
        client = await self._get_client()
        log_with_source(logger, "client", "debug", "API request", method=method, path=path)

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_with_source(
                logger, "client", "error", "API request failed",
                method=method, path=path, error=str(e),
            )
            raise ApiRequestError("Could not reach the notes server") from e

        log_with_source(
            logger, "client", "debug", "API response",
            method=method, path=path, status_code=response.status_code,
        )
        if response.is_error:
            raise _error_from_response(response)
        return response

    async def list_notes(self) -> list[ClientNote]:
        response = await self.request("GET", NOTES_PATH)
        return _notes(response)

    async def get_note(self, note_id: int) -> ClientNote:
        response = await self.request("GET", f"{NOTES_PATH}/{note_id}")
        return _note(response)

    async def create_note(
        self,
        title: str,
        content: str,
        image: ImageFile | None = None,
    ) -> ClientNote:
        response = await self.request(
            "POST",
            NOTES_PATH,
            data={"title": title, "content": content},
            files=_files(image),
        )
        return _note(response)

    async def update_note(
        self,
        note_id: int,
        title: str,
        content: str,
        image_action: str = "keep",
        image: ImageFile | None = None,
    ) -> ClientNote:
        response = await self.request(
            "PUT",
            f"{NOTES_PATH}/{note_id}",
            data={"title": title, "content": content, "imageAction": image_action},
            files=_files(image),
        )
        return _note(response)

    async def delete_note(self, note_id: int) -> None:
        await self.request("DELETE", f"{NOTES_PATH}/{note_id}")


def _files(image: ImageFile | None) -> dict[str, tuple[str, bytes, str]] | None:
    if image is None:
        return None
    return {"image": (image.filename, image.data, image.content_type)}


def _data(response: httpx.Response) -> Any:
    try:
        return response.json()["data"]
    except (ValueError, KeyError, TypeError) as e:
        raise _unexpected(response) from e


def _note(response: httpx.Response) -> ClientNote:
    try:
        return ClientNote.from_api(_data(response))
    except (ValueError, KeyError, TypeError) as e:
        raise _unexpected(response) from e


def _notes(response: httpx.Response) -> list[ClientNote]:
    try:
        return [ClientNote.from_api(item) for item in _data(response)]
    except (ValueError, KeyError, TypeError) as e:
        raise _unexpected(response) from e


def _unexpected(response: httpx.Response) -> ApiRequestError:
    return ApiRequestError(
        "Unexpected response from the notes server", response.status_code
    )


def _error_from_response(response: httpx.Response) -> ApiRequestError:
    """Build the error from an ErrorResponse body, or from the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        error = {}
    message = error.get("message") or f"Request failed with status {response.status_code}"
    return ApiRequestError(message, response.status_code, error.get("code"))
