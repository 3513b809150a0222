"""OAuth 1.0a client for the external cross-posting network.

Requests are signed with :mod:`oauthlib` and sent with a shared
``httpx.AsyncClient``. Upstream failures are mapped onto
:class:`ExternalServiceError` with the status the API should answer with:

- 429 when the external network rate-limits us,
- 401 when the stored credentials were revoked,
- 503 when no consumer credentials are configured,
- 502 for every other failure.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import parse_qsl, urlencode

import httpx
from oauthlib import oauth1

from snapfeed.core.errors import ExternalServiceError
from snapfeed.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_TOO_MANY_REQUESTS = 429
HTTP_BAD_REQUEST = 400

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class GatewayConfig:
    """Immutable configuration for the gateway."""

    consumer_key: str | None
    consumer_secret: str | None
    api_base_url: str
    upload_base_url: str
    timeout_seconds: float

    @property
    def configured(self) -> bool:
        return bool(self.consumer_key and self.consumer_secret)


@dataclass(frozen=True)
class RequestToken:
    token: str
    secret: str
    authorize_url: str


@dataclass(frozen=True)
class AccessGrant:
    access_token: str
    access_secret: str
    account_id: str
    screen_name: str


@dataclass(frozen=True)
class ExternalProfile:
    account_id: str
    name: str
    handle: str
    profile_image_url: str | None


@dataclass(frozen=True)
class MediaPayload:
    data: bytes
    content_type: str
    filename: str = "media"


@dataclass(frozen=True)
class ExternalPost:
    post_id: str
    text: str
    with_media: bool


class CrossPostGateway(Protocol):
    """Contract consumed by the cross-post flow."""

    @property
    def configured(self) -> bool: ...

    async def request_token(self, callback_url: str) -> RequestToken: ...

    async def exchange_token(self, token: str, secret: str, verifier: str) -> AccessGrant: ...

    async def get_profile(self, access_token: str, access_secret: str) -> ExternalProfile: ...

    async def post_media(
        self,
        access_token: str,
        access_secret: str,
        text: str,
        media: MediaPayload | None = None,
    ) -> ExternalPost: ...


def load_gateway_config() -> GatewayConfig:
    """Build configuration object from global settings."""
    configured = settings.crosspost_configured
    return GatewayConfig(
        consumer_key=settings.crosspost_api_key if configured else None,
        consumer_secret=settings.crosspost_api_secret if configured else None,
        api_base_url=settings.crosspost_api_base_url.rstrip("/"),
        upload_base_url=settings.crosspost_upload_base_url.rstrip("/"),
        timeout_seconds=float(settings.crosspost_http_timeout_seconds),
    )


class TwitterGateway:
    """HTTP client wrapper for the external network's OAuth 1.0a API."""

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_gateway_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self.config.configured

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.configured:
            raise ExternalServiceError("Cross-posting is not configured", status_code=503)
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _signer(self, **kwargs: Any) -> oauth1.Client:
        return oauth1.Client(
            self.config.consumer_key,
            client_secret=self.config.consumer_secret,
            **kwargs,
        )

    async def _request(
        self,
        action: str,
        method: str,
        url: str,
        signer: oauth1.Client,
        *,
        form: dict[str, str] | None = None,
        json_data: Any | None = None,
        files: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()

        # Only form-encoded bodies take part in the OAuth 1.0a signature.
        if form is not None:
            body = urlencode(form)
            _, headers, _ = signer.sign(
                url,
                http_method=method,
                body=body,
                headers={"Content-Type": FORM_CONTENT_TYPE},
            )
            request_kwargs: dict[str, Any] = {"content": body}
        else:
            _, headers, _ = signer.sign(url, http_method=method)
            request_kwargs = {"json": json_data, "files": files}

        try:
            response = await client.request(method, url, headers=headers, **request_kwargs)
        except httpx.HTTPError as exc:
            logger.error("Cross-post gateway %s failed", action, exc_info=True)
            raise ExternalServiceError(f"Failed to {action}: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            self._raise_for_status(action, response)
        return response

    @staticmethod
    def _raise_for_status(action: str, response: httpx.Response) -> None:
        status = response.status_code
        logger.error("Cross-post gateway %s returned %s: %s", action, status, response.text[:200])
        if status == HTTP_TOO_MANY_REQUESTS:
            raise ExternalServiceError(
                "The external network rate limit was reached; try again later",
                status_code=HTTP_TOO_MANY_REQUESTS,
            )
        if status == HTTP_UNAUTHORIZED:
            raise ExternalServiceError(
                "The external account authorization is no longer valid; reconnect it",
                status_code=HTTP_UNAUTHORIZED,
            )
        raise ExternalServiceError(f"Failed to {action} (upstream status {status})")

    @staticmethod
    def _parse_form(action: str, response: httpx.Response, *keys: str) -> dict[str, str]:
        values = dict(parse_qsl(response.text))
        missing = [key for key in keys if not values.get(key)]
        if missing:
            raise ExternalServiceError(f"Failed to {action}: response missing {', '.join(missing)}")
        return values

    @staticmethod
    def _parse_json(action: str, response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceError(f"Failed to {action}: malformed response") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceError(f"Failed to {action}: malformed response")
        return payload

    async def request_token(self, callback_url: str) -> RequestToken:
        """Obtain a temporary request token and the URL the user must visit."""
        action = "obtain request token"
        response = await self._request(
            action,
            "POST",
            f"{self.config.api_base_url}/oauth/request_token",
            self._signer(callback_uri=callback_url),
            form={},
        )
        values = self._parse_form(action, response, "oauth_token", "oauth_token_secret")
        token = values["oauth_token"]
        return RequestToken(
            token=token,
            secret=values["oauth_token_secret"],
            authorize_url=f"{self.config.api_base_url}/oauth/authorize?{urlencode({'oauth_token': token})}",
        )

    async def exchange_token(self, token: str, secret: str, verifier: str) -> AccessGrant:
        """Trade an authorized request token for long-lived credentials."""
        action = "exchange OAuth token"
        response = await self._request(
            action,
            "POST",
            f"{self.config.api_base_url}/oauth/access_token",
            self._signer(resource_owner_key=token, resource_owner_secret=secret, verifier=verifier),
            form={},
        )
        values = self._parse_form(
            action, response, "oauth_token", "oauth_token_secret", "user_id"
        )
        return AccessGrant(
            access_token=values["oauth_token"],
            access_secret=values["oauth_token_secret"],
            account_id=values["user_id"],
            screen_name=values.get("screen_name", ""),
        )

    async def get_profile(self, access_token: str, access_secret: str) -> ExternalProfile:
        """Fetch the profile of the account owning the credentials."""
        action = "fetch profile"
        query = urlencode({"user.fields": "profile_image_url"})
        response = await self._request(
            action,
            "GET",
            f"{self.config.api_base_url}/2/users/me?{query}",
            self._signer(resource_owner_key=access_token, resource_owner_secret=access_secret),
        )
        data = self._parse_json(action, response).get("data") or {}
        if not data.get("id") or not data.get("username"):
            raise ExternalServiceError(f"Failed to {action}: response missing account id")
        return ExternalProfile(
            account_id=str(data["id"]),
            name=data.get("name") or data["username"],
            handle=data["username"],
            profile_image_url=data.get("profile_image_url"),
        )

    async def _upload_media(self, access_token: str, access_secret: str, media: MediaPayload) -> str:
        action = "upload media"
        response = await self._request(
            action,
            "POST",
            f"{self.config.upload_base_url}/1.1/media/upload.json",
            self._signer(resource_owner_key=access_token, resource_owner_secret=access_secret),
            files={"media": (media.filename, media.data, media.content_type)},
        )
        media_id = self._parse_json(action, response).get("media_id_string")
        if not media_id:
            raise ExternalServiceError(f"Failed to {action}: response missing media id")
        return str(media_id)

    async def post_media(
        self,
        access_token: str,
        access_secret: str,
        text: str,
        media: MediaPayload | None = None,
    ) -> ExternalPost:
        """Publish `text`, attaching `media` when given."""
        payload: dict[str, Any] = {"text": text}
        if media is not None:
            media_id = await self._upload_media(access_token, access_secret, media)
            payload["media"] = {"media_ids": [media_id]}

        action = "publish post"
        response = await self._request(
            action,
            "POST",
            f"{self.config.api_base_url}/2/tweets",
            self._signer(resource_owner_key=access_token, resource_owner_secret=access_secret),
            json_data=payload,
        )
        data = self._parse_json(action, response).get("data") or {}
        if not data.get("id"):
            raise ExternalServiceError(f"Failed to {action}: response missing post id")
        return ExternalPost(post_id=str(data["id"]), text=text, with_media=media is not None)


class _GatewaySingleton:
    """Singleton wrapper for the process-wide gateway."""

    _instance: TwitterGateway | None = None

    @classmethod
    def get_instance(cls) -> TwitterGateway:
        if cls._instance is None:
            cls._instance = TwitterGateway()
        return cls._instance


def get_gateway() -> CrossPostGateway:
    """Return the shared gateway instance."""
    return _GatewaySingleton.get_instance()


async def close_gateway() -> None:
    """Close the shared gateway's HTTP client if one was opened."""
    if _GatewaySingleton._instance is not None:
        await _GatewaySingleton._instance.aclose()
