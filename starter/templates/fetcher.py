"""HTTP access to the published template set."""

from __future__ import annotations

import json
from typing import Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen

from ..models import TemplateEntry, TemplateManifest

DEFAULT_MANIFEST_URL = (
    "https://raw.githubusercontent.com/cloud66-oss/starter/{branch}/templates/manifest.json"
)

Opener = Callable[[Request], bytes]


class FetchError(RuntimeError):
    """Raised when a remote resource cannot be retrieved."""


class TemplateFetcher:
    """Fetches the template manifest and the files it references."""

    def __init__(
        self,
        manifest_url: str = DEFAULT_MANIFEST_URL,
        *,
        request_timeout: Optional[float] = None,
        opener: Opener | None = None,
    ) -> None:
        self.manifest_url = manifest_url
        self.request_timeout = request_timeout
        self._opener = opener or self._urlopen

    def manifest_url_for(self, branch: str) -> str:
        return self.manifest_url.replace("{branch}", branch)

    def fetch_manifest(self, branch: str) -> TemplateManifest:
        url = self.manifest_url_for(branch)
        body = self._get(url)
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FetchError(f"Template manifest at {url} is not valid JSON: {exc}") from exc
        try:
            return TemplateManifest.from_dict(payload)
        except ValueError as exc:
            raise FetchError(f"Template manifest at {url} is invalid: {exc}") from exc

    def download(self, entry: TemplateEntry, branch: str) -> bytes:
        source = urljoin(self.manifest_url_for(branch), entry.remote_source)
        return self._get(source)

    def _get(self, url: str) -> bytes:
        request = Request(url, headers={"User-Agent": "starter"})
        return self._opener(request)

    def _urlopen(self, request: Request) -> bytes:
        try:
            with urlopen(request, timeout=self.request_timeout) as response:
                return response.read()
        except HTTPError as exc:
            raise FetchError(f"GET {request.full_url} returned HTTP {exc.code}") from exc
        except URLError as exc:
            raise FetchError(f"GET {request.full_url} failed: {exc.reason}") from exc
        except OSError as exc:
            raise FetchError(f"GET {request.full_url} failed: {exc}") from exc


__all__ = ["DEFAULT_MANIFEST_URL", "FetchError", "TemplateFetcher"]
