"""Chef Server source.

Reads cookbooks uploaded to a Chef Server organization. Every request is
authenticated with Chef's signed-header protocol (version 1.3): a canonical
description of the request is signed with the API client's RSA key and sent
in ``X-Ops-Authorization-N`` headers.

- ``GET <base>/cookbooks/<name>`` lists the uploaded versions.
- ``GET <base>/cookbooks/<name>/<version>`` returns the cookbook manifest,
  whose ``metadata.dependencies`` holds the dependency constraints.

``base`` is the organization URL, e.g.
``https://chef.example.com/organizations/ops``.

Usage::

    source = ChefServerSource(url, client_name="ci", client_key="~/.chef/ci.pem")
    versions = await source.list_versions("nginx")
"""

from __future__ import annotations

import base64
import hashlib
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlparse

import httpx
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from cookshelf.core.dependency.constraints import Version, parse_version
from cookshelf.core.dependency.models import Cookbook, SourceLocation
from cookshelf.exceptions import (
    CookbookNotFoundError,
    InvalidMetadataError,
    ParseError,
    SourceConfigError,
)
from cookshelf.sources.base import CookbookSource
from cookshelf.sources.http_client import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    fetch_json,
)
from cookshelf.sources.supermarket import parse_dependencies

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COOKBOOK_ENDPOINT: str = "{base}/cookbooks/{name}"
VERSION_ENDPOINT: str = "{base}/cookbooks/{name}/{version}"

SIGN_VERSION: str = "1.3"
SERVER_API_VERSION: str = "1"

# Client version announced to the server; it rejects requests without one.
CHEF_VERSION: str = "18.0.0"

# Width of each X-Ops-Authorization-N header value.
AUTH_CHUNK: int = 60


# ---------------------------------------------------------------------------
# Request signing
# ---------------------------------------------------------------------------


def load_client_key(path: Path | str) -> rsa.RSAPrivateKey:
    """Load an API client's PEM-encoded RSA private key.

    Raises:
        SourceConfigError: If the file is missing or not an RSA key.
    """
    key_path = Path(path).expanduser()
    try:
        data = key_path.read_bytes()
    except OSError as exc:
        raise SourceConfigError(f"cannot read chef client key {key_path}: {exc}") from exc
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as exc:
        raise SourceConfigError(f"invalid chef client key {key_path}: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise SourceConfigError(f"chef client key {key_path} is not an RSA key")
    return key


def canonical_path(path: str) -> str:
    """Collapse repeated slashes and drop a trailing one."""
    path = re.sub(r"/+", "/", path or "/")
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def _digest(data: bytes) -> str:
    return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")


def canonical_request(
    method: str,
    path: str,
    content_hash: str,
    timestamp: str,
    user_id: str,
    server_api_version: str = SERVER_API_VERSION,
) -> str:
    """The string that is signed for a version 1.3 request."""
    return "\n".join(
        [
            f"Method:{method.upper()}",
            f"Path:{canonical_path(path)}",
            f"X-Ops-Content-Hash:{content_hash}",
            f"X-Ops-Sign:version={SIGN_VERSION}",
            f"X-Ops-Timestamp:{timestamp}",
            f"X-Ops-UserId:{user_id}",
            f"X-Ops-Server-API-Version:{server_api_version}",
        ]
    )


def signed_headers(
    client_name: str,
    key: rsa.RSAPrivateKey,
    method: str,
    path: str,
    *,
    body: bytes = b"",
    timestamp: datetime | None = None,
) -> dict[str, str]:
    """Build the authentication headers for one request.

    Args:
        client_name: API client (or user) name.
        key: The client's private key.
        method: HTTP method.
        path: Request path, without the query string.
        body: Request body.
        timestamp: Signing time; now (UTC) when omitted.

    Returns:
        Headers to send with the request.
    """
    when = (timestamp or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = when.strftime("%Y-%m-%dT%H:%M:%SZ")
    content_hash = _digest(body)
    to_sign = canonical_request(method, path, content_hash, stamp, client_name)
    signature = key.sign(to_sign.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    encoded = base64.b64encode(signature).decode("ascii")

    headers = {
        "X-Ops-Sign": f"algorithm=sha256;version={SIGN_VERSION};",
        "X-Ops-Userid": client_name,
        "X-Ops-Timestamp": stamp,
        "X-Ops-Content-Hash": content_hash,
        "X-Ops-Server-API-Version": SERVER_API_VERSION,
        "X-Chef-Version": CHEF_VERSION,
    }
    for index, start in enumerate(range(0, len(encoded), AUTH_CHUNK), start=1):
        headers[f"X-Ops-Authorization-{index}"] = encoded[start : start + AUTH_CHUNK]
    return headers


# ---------------------------------------------------------------------------
# Chef Server Source
# ---------------------------------------------------------------------------


class ChefServerSource(CookbookSource):
    """Source backed by a Chef Server organization.

    Args:
        base_url: Organization URL.
        client_name: API client name used to sign requests.
        client_key: Path to the client's PEM key, or a loaded key.
        timeout: HTTP timeout in seconds.
        retry_count: HTTP retries on transient failures.
        retry_delay: Base delay between retries in seconds.
        verify: Verify TLS certificates.
        transport: Optional httpx transport (used by tests).

    Raises:
        SourceConfigError: If the URL, client name or key is missing or
            the key cannot be loaded.
    """

    def __init__(
        self,
        base_url: str,
        *,
        client_name: str,
        client_key: Path | str | rsa.RSAPrivateKey,
        timeout: float = DEFAULT_TIMEOUT,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise SourceConfigError("chef_server source needs a server URL (set chef_server_url)")
        if not client_name:
            raise SourceConfigError("chef_server source needs a client name (set client_name)")
        if not client_key:
            raise SourceConfigError("chef_server source needs a client key (set client_key)")
        self._base_url = base_url.rstrip("/")
        self._client_name = client_name
        self._key = client_key if isinstance(client_key, rsa.RSAPrivateKey) else load_client_key(client_key)
        self._timeout = timeout
        self._retry_count = retry_count
        self._retry_delay = retry_delay
        self._verify = verify
        self._transport = transport

    @property
    def name(self) -> str:
        return f"chef_server ({self._base_url})"

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def client_name(self) -> str:
        return self._client_name

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(type="chef_server", url=self._base_url)

    async def _get(self, url: str, name: str) -> Any:
        headers = signed_headers(self._client_name, self._key, "GET", urlparse(url).path)
        return await fetch_json(
            url,
            source=self.name,
            name=name,
            headers=headers,
            timeout=self._timeout,
            retry_count=self._retry_count,
            retry_delay=self._retry_delay,
            verify=self._verify,
            transport=self._transport,
        )

    async def list_versions(self, name: str) -> list[Version]:
        """List the versions uploaded for *name*, newest first."""
        url = COOKBOOK_ENDPOINT.format(base=self._base_url, name=quote(name, safe=""))
        data = await self._get(url, name)
        if not isinstance(data, dict):
            raise InvalidMetadataError(name, "cookbook response is not an object")
        entry = data.get(name)
        if not isinstance(entry, dict):
            raise CookbookNotFoundError(name, source=self.name)

        versions = []
        for item in entry.get("versions") or []:
            text = item.get("version") if isinstance(item, dict) else None
            if not isinstance(text, str):
                continue
            try:
                versions.append(parse_version(text))
            except ParseError:
                logger.debug("Skipping unparsable version %r of %s", text, name)
        logger.debug("%s lists %d versions of %s", self.name, len(versions), name)
        return self.newest_first(versions)

    async def fetch_cookbook(self, name: str, version: Version) -> Cookbook:
        """Fetch the dependencies of *name* at *version* from its manifest."""
        url = VERSION_ENDPOINT.format(
            base=self._base_url,
            name=quote(name, safe=""),
            version=quote(str(version), safe=""),
        )
        data = await self._get(url, name)
        if not isinstance(data, dict):
            raise InvalidMetadataError(name, "cookbook version response is not an object")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidMetadataError(name, "'metadata' must be an object")

        return Cookbook(
            name=name,
            version=version,
            dependencies=parse_dependencies(name, metadata.get("dependencies")),
            source=self.location,
        )
