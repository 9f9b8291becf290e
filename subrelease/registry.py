"""Package registry queries.

Reads the latest published version of a package from a PyPI-compatible JSON
API (``<registry-url>/<name>/json``).
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request

from .errors import RegistryError

DEFAULT_REGISTRY_URL = "https://pypi.org/pypi"
USER_AGENT = "subrelease"
TIMEOUT_SECONDS = 30.0


def _get_json(url: str) -> dict:
    """Fetch a URL and parse it as a JSON object.

    Raises:
        RegistryError: On HTTP errors, network errors or malformed JSON.
            ``status`` is 0 for anything that is not an HTTP error.
    """
    req = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
    try:
        with urllib.request.urlopen(
            req, timeout=TIMEOUT_SECONDS, context=ssl.create_default_context()
        ) as response:
            payload = response.read()
    except urllib.error.HTTPError as exc:
        raise RegistryError(url, exc.code, str(exc.reason)) from exc
    except urllib.error.URLError as exc:
        raise RegistryError(url, 0, str(exc.reason)) from exc
    except TimeoutError as exc:
        raise RegistryError(url, 0, "Request timed out") from exc

    try:
        data = json.loads(payload.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RegistryError(url, 0, f"JSON parse error: {exc}") from exc
    if not isinstance(data, dict):
        raise RegistryError(url, 0, "Expected JSON object")
    return data


def get_registry_version(
    package_name: str, registry_url: str = DEFAULT_REGISTRY_URL
) -> str | None:
    """Return the latest version of a package published on the registry.

    Returns:
        The version string, or None if the registry does not know the
        package (first release).

    Raises:
        RegistryError: If the registry cannot be queried.
    """
    url = f"{registry_url.rstrip('/')}/{package_name}/json"
    try:
        data = _get_json(url)
    except RegistryError as exc:
        if exc.status == 404:
            return None
        raise

    version = data.get("info", {}).get("version")
    if not version:
        raise RegistryError(url, 0, "Response has no info.version")
    return str(version)
