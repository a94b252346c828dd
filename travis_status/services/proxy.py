"""
Proxy setup for outgoing Travis queries.

The proxy address comes from the conventional ``HTTPS_PROXY`` /
``HTTP_PROXY`` environment variables. ``configure_proxy`` is a pure
function of the settings it is given, so calling it more than once is
harmless; the session runs it once at startup.
"""

import re
from typing import Optional

import httpx
from pydantic import BaseModel

from travis_status.config import Settings
from travis_status.models.status import ErrorKind, ErrorReport
from travis_status.services.errors import ProxyConfigurationError
from travis_status.utils.logging import get_logger


logger = get_logger(__name__)

SUPPORTED_SCHEMES = {"http", "https", "socks5", "socks5h"}

_USERINFO = re.compile(r"^((?:[^:/@]*://)?)[^/]*@")


def redact_proxy_address(raw: str) -> str:
    """Hide any user:password part of a proxy address."""
    return _USERINFO.sub(r"\1***@", raw.strip())


class ProxyConfig(BaseModel):
    """Outcome of proxy setup."""

    url: Optional[str] = None
    error: Optional[ErrorReport] = None


def parse_proxy_url(raw: str) -> str:
    """
    Validate a proxy address and normalize it to a URL.

    Args:
        raw: Proxy address, e.g. ``http://proxy:3128`` or ``proxy:3128``

    Returns:
        Normalized proxy URL

    Raises:
        ProxyConfigurationError: If the address cannot be parsed
    """
    shown = redact_proxy_address(raw)
    candidate = raw.strip()
    if "://" not in candidate:
        candidate = f"http://{candidate}"

    try:
        url = httpx.URL(candidate)
        # Port parsing is lazy for some inputs
        port = url.port
    except (httpx.InvalidURL, ValueError) as e:
        raise ProxyConfigurationError(f"Invalid proxy address '{shown}': {e}") from e

    if url.scheme not in SUPPORTED_SCHEMES:
        raise ProxyConfigurationError(
            f"Invalid proxy address '{shown}': unsupported scheme '{url.scheme}'"
        )
    if not url.host:
        raise ProxyConfigurationError(f"Invalid proxy address '{shown}': missing host")

    netloc = url.host if port is None else f"{url.host}:{port}"
    userinfo = url.userinfo.decode("ascii") if url.userinfo else ""
    if userinfo:
        netloc = f"{userinfo}@{netloc}"
    return f"{url.scheme}://{netloc}"


def configure_proxy(settings: Settings) -> ProxyConfig:
    """
    Work out the proxy to use for Travis queries.

    An invalid address is not fatal: queries go out directly and the
    returned config carries an error report for a one-time warning.

    Args:
        settings: Application settings

    Returns:
        ProxyConfig with either a URL, an error, or neither
    """
    raw = settings.proxy_url
    if not raw:
        return ProxyConfig()

    try:
        url = parse_proxy_url(raw)
    except ProxyConfigurationError as e:
        logger.warning(
            "Proxy configuration is invalid; Travis queries will not use a proxy",
            extra={"proxy": redact_proxy_address(raw), "error": str(e)},
        )
        return ProxyConfig(
            error=ErrorReport(kind=ErrorKind.PROXY_CONFIGURATION_INVALID, message=str(e))
        )

    logger.info("Using proxy for Travis queries", extra={"proxy_host": httpx.URL(url).host})
    return ProxyConfig(url=url)
