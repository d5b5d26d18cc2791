"""
Roomly Backend - OAuth Login Service (GitHub & Google)
=======================================================

What:  Authorization-code flow against GitHub and Google: build the consent
       URL, exchange the returned code for an access token, and read the
       user's name, email and avatar.
How:   Plain httpx calls; the transport is injectable so tests can use
       httpx.MockTransport. Any provider failure is raised as
       ExternalServiceError (502). The upstream body is logged only.
Who:   /v1/auth/{github,google}/{login,callback} routes.

Flow:
    /login     → 307 to provider consent page (state in a short-lived cookie)
    provider   → 302 back to /callback?code=...&state=...
    /callback  → exchange_code → fetch_profile → upsert user → session cookie
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from roomly.config import settings
from roomly.exceptions import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthProvider:
    name: str
    client_id: str
    client_secret: str
    authorize_url: str
    token_url: str
    profile_url: str
    scope: str

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def redirect_url(self) -> str:
        return f"{settings.api_base_url.rstrip('/')}/v1/auth/{self.name}/callback"


@dataclass
class OAuthProfile:
    name: Optional[str]
    email: str
    image: Optional[str]


GITHUB_EMAILS_URL = "https://api.github.com/user/emails"


def _providers() -> Dict[str, OAuthProvider]:
    return {
        "github": OAuthProvider(
            name="github",
            client_id=settings.github_client_id,
            client_secret=settings.github_client_secret,
            authorize_url="https://github.com/login/oauth/authorize",
            token_url="https://github.com/login/oauth/access_token",
            profile_url="https://api.github.com/user",
            scope="user:email",
        ),
        "google": OAuthProvider(
            name="google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            authorize_url="https://accounts.google.com/o/oauth2/auth",
            token_url="https://oauth2.googleapis.com/token",
            profile_url="https://www.googleapis.com/oauth2/v2/userinfo?fields=email,name,picture",
            scope="https://www.googleapis.com/auth/userinfo.email",
        ),
    }


class OAuthService:
    def __init__(
        self,
        providers: Optional[Dict[str, OAuthProvider]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.providers = providers if providers is not None else _providers()
        self.transport = transport

    def get_provider(self, name: str) -> OAuthProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise NotFoundError(resource="oauth provider", resource_id=name)
        if not provider.configured:
            logger.error("OAuth login attempted for unconfigured provider %s", name)
            raise ExternalServiceError(
                service=name,
                message=f"{name} login is not available",
            )
        return provider

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=settings.oauth_timeout,
            headers={"Accept": "application/json"},
        )

    def authorization_url(self, provider_name: str, state: str) -> str:
        provider = self.get_provider(provider_name)
        params = {
            "client_id": provider.client_id,
            "redirect_uri": provider.redirect_url,
            "response_type": "code",
            "scope": provider.scope,
            "state": state,
            "access_type": "offline",
        }
        return str(httpx.URL(provider.authorize_url, params=params))

    async def exchange_code(self, provider_name: str, code: str) -> str:
        """Trade the callback `code` for an access token."""
        provider = self.get_provider(provider_name)
        if not code:
            raise ExternalServiceError(service=provider.name, message="missing authorization code")

        payload = await self._request_json(
            provider,
            "POST",
            provider.token_url,
            data={
                "client_id": provider.client_id,
                "client_secret": provider.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": provider.redirect_url,
            },
        )
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            logger.error("%s token exchange returned no access_token: %s", provider.name, payload)
            raise ExternalServiceError(service=provider.name, message=f"{provider.name} login failed")
        return access_token

    async def fetch_profile(self, provider_name: str, access_token: str) -> OAuthProfile:
        provider = self.get_provider(provider_name)
        auth = {"Authorization": f"Bearer {access_token}"}

        data = await self._request_json(provider, "GET", provider.profile_url, headers=auth)
        if not isinstance(data, dict):
            raise ExternalServiceError(service=provider.name, message=f"{provider.name} login failed")

        if provider.name == "github":
            profile = OAuthProfile(
                name=data.get("name") or data.get("login"),
                email=data.get("email") or "",
                image=data.get("avatar_url"),
            )
            if not profile.email:
                # Private GitHub addresses are only exposed through /user/emails
                emails = await self._request_json(provider, "GET", GITHUB_EMAILS_URL, headers=auth)
                profile.email = next(
                    (e.get("email", "") for e in emails or [] if e.get("primary")),
                    "",
                )
        else:
            profile = OAuthProfile(
                name=data.get("name"),
                email=data.get("email") or "",
                image=data.get("picture"),
            )

        if not profile.email:
            raise ExternalServiceError(
                service=provider.name,
                message=f"your {provider.name} account has no email address we can use",
            )
        return profile

    async def _request_json(
        self,
        provider: OAuthProvider,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "%s returned HTTP %s for %s: %s",
                provider.name, e.response.status_code, url, e.response.text,
            )
            raise ExternalServiceError(
                service=provider.name,
                message=f"{provider.name} login failed",
                context={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("%s request to %s failed: %s", provider.name, url, e)
            raise ExternalServiceError(
                service=provider.name,
                message=f"{provider.name} login failed",
            ) from e


oauth_service = OAuthService()
