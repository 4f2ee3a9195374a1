"""
URL Ban Expressions

Builds the ban expression matching a URL on the host header and request
path.
"""

from urllib.parse import urlsplit

from ..exceptions import ValidationError

# Dots stay unescaped and match any character, as existing bans expect
REGEX_ESCAPES = (
    ("?", "\\?"),
    ("[", "\\["),
    ("]", "\\]"),
)


def escape_for_regex(value: str) -> str:
    """
    Escape the regex metacharacters that appear in hosts and paths.

    Args:
        value: Literal host or path

    Returns:
        The value with ?, [ and ] escaped
    """
    for char, escaped in REGEX_ESCAPES:
        value = value.replace(char, escaped)
    return value


def url_ban_expression(url: str, recursive: bool = False) -> str:
    """
    Build the ban expression for a URL.

    Args:
        url: Absolute URL to ban
        recursive: Also match every path starting with the URL's path

    Returns:
        Expression of the form
        req.http.host ~ "^(?i)<host>$" && req.url ~ "^<path>$"

    Raises:
        ValidationError: the URL has no host or an invalid port

    Examples:
        >>> url_ban_expression("http://example.com/a/b")
        'req.http.host ~ "^(?i)example.com$" && req.url ~ "^/a/b$"'
        >>> url_ban_expression("http://example.com/a", recursive=True)
        'req.http.host ~ "^(?i)example.com$" && req.url ~ "^/a"'
    """
    parts = urlsplit(url)
    if not parts.hostname:
        raise ValidationError(f"Invalid URL provided: no host set in {url!r}")

    try:
        port = parts.port
    except ValueError as exc:
        raise ValidationError(f"Invalid URL provided: {exc}") from exc

    # hostname is lowercased by urlsplit; keep the host as written
    netloc = parts.netloc.rpartition("@")[2]
    host = netloc.rsplit(":", 1)[0] if port is not None else netloc.rstrip(":")
    if port is not None:
        host = f"{host}:{port}"

    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"

    anchor = "" if recursive else "$"
    return (
        f'req.http.host ~ "^(?i){escape_for_regex(host)}$" '
        f'&& req.url ~ "^{escape_for_regex(path)}{anchor}"'
    )
