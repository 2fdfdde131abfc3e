"""Anonymous Docker registry access used to narrow supported versions."""

from __future__ import annotations

import base64
import json
import re
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.error import HTTPError
from urllib.parse import urlencode, urljoin
from urllib.request import Request, urlopen

from .errors import RegistryUnavailableError, TagLookupError
from .logging import get_logger
from .packs import Pack

DEFAULT_REGISTRY_URL = "https://registry-1.docker.io/"

_SEMVER_TAG = re.compile(r"\d+\.\d+\.\d+")
_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')
_NEXT_LINK = re.compile(r'<([^>]+)>\s*;\s*rel="?next"?')

Response = Tuple[int, Mapping[str, str], bytes]
Transport = Callable[[Request], Response]


def filter_semver_tags(tags: Iterable[str]) -> List[str]:
    """Keep only plain ``major.minor.patch`` tags, preserving order."""
    return [tag for tag in tags if _SEMVER_TAG.fullmatch(tag)]


class RegistryClient:
    """Minimal Docker Registry HTTP API v2 client with bearer token support."""

    def __init__(
        self,
        url: str = DEFAULT_REGISTRY_URL,
        *,
        username: str = "",
        password: str = "",
        transport: Transport | None = None,
    ) -> None:
        self.url = url if url.endswith("/") else f"{url}/"
        self.username = username
        self.password = password
        self._transport = transport or _urlopen_transport
        self._tokens: Dict[str, str] = {}
        self.logger = get_logger("registry")

    def ping(self) -> None:
        try:
            status, _, _ = self._get(urljoin(self.url, "v2/"))
        except OSError as exc:
            raise RegistryUnavailableError(
                f"can't connect to docker registry to check for allowed base images: {exc}"
            ) from exc
        if status != 200:
            raise RegistryUnavailableError(
                f"can't connect to docker registry to check for allowed base images (HTTP {status})"
            )

    def tags(self, repository: str) -> List[str]:
        url: Optional[str] = urljoin(self.url, f"v2/{repository}/tags/list")
        tags: List[str] = []
        while url:
            try:
                status, headers, body = self._get(url)
            except OSError as exc:
                raise TagLookupError(f"can't find the tags for {repository}: {exc}") from exc
            if status != 200:
                raise TagLookupError(f"can't find the tags for {repository} (HTTP {status})")
            try:
                payload = json.loads(body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise TagLookupError(f"can't find the tags for {repository}: {exc}") from exc
            page = payload.get("tags") if isinstance(payload, dict) else None
            if page:
                tags.extend(str(tag) for tag in page)
            url = _next_page(self.url, headers)
        self.logger.debug("Registry returned %d tags for %s", len(tags), repository)
        return tags

    def _get(self, url: str) -> Response:
        scope_key = url.split("?", 1)[0]
        response = self._transport(self._request(url, self._tokens.get(scope_key)))
        status, headers, _ = response
        if status != 401:
            return response
        challenge = _header(headers, "WWW-Authenticate")
        if not challenge or not challenge.lower().startswith("bearer"):
            return response
        token = self._fetch_token(challenge)
        if token is None:
            return response
        self._tokens[scope_key] = token
        return self._transport(self._request(url, token))

    def _fetch_token(self, challenge: str) -> Optional[str]:
        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            return None
        query = urlencode({key: value for key, value in params.items() if key in {"service", "scope"}})
        headers = {"User-Agent": "starter"}
        if self.username:
            credentials = f"{self.username}:{self.password}".encode("utf-8")
            headers["Authorization"] = "Basic " + base64.b64encode(credentials).decode("ascii")
        status, _, body = self._transport(Request(f"{realm}?{query}" if query else realm, headers=headers))
        if status != 200:
            return None
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        token = payload.get("token") or payload.get("access_token")
        return str(token) if token else None

    @staticmethod
    def _request(url: str, token: Optional[str]) -> Request:
        headers = {"User-Agent": "starter", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return Request(url, headers=headers)


class VersionEnricher:
    """Narrows a pack's supported versions to the tags published upstream."""

    def __init__(self, client_factory: Callable[[str], RegistryClient] | None = None) -> None:
        self._client_factory = client_factory or RegistryClient
        self.logger = get_logger("registry")

    def enrich(self, pack: Pack, registry_endpoint: str = DEFAULT_REGISTRY_URL) -> None:
        if not pack.enrichable:
            self.logger.debug("Skipping registry lookup for %s", pack.name)
            return
        client = self._client_factory(registry_endpoint)
        client.ping()
        tags = client.tags(f"library/{pack.name}")
        versions = filter_semver_tags(tags)
        self.logger.info("Registry lists %d released versions for %s", len(versions), pack.name)
        pack.set_supported_language_versions(versions)


def _urlopen_transport(request: Request) -> Response:
    try:
        with urlopen(request) as response:
            return response.status, dict(response.headers.items()), response.read()
    except HTTPError as exc:
        return exc.code, dict(exc.headers.items()) if exc.headers else {}, exc.read() or b""


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    return None


def _next_page(base_url: str, headers: Mapping[str, str]) -> Optional[str]:
    link = _header(headers, "Link")
    if not link:
        return None
    match = _NEXT_LINK.search(link)
    return urljoin(base_url, match.group(1)) if match else None


__all__ = [
    "DEFAULT_REGISTRY_URL",
    "RegistryClient",
    "VersionEnricher",
    "filter_semver_tags",
]
