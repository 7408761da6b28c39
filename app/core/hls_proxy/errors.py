class ProxyError(Exception):
    pass


class InvalidRequest(ProxyError):
    """Missing or malformed request parameter."""


class UpstreamError(ProxyError):
    """The media host answered, but not with a 2xx status."""

    def __init__(self, status: int, url: str) -> None:
        self.status = status
        self.url = url
        super().__init__(f"Upstream returned {status}")


class NetworkError(ProxyError):
    """Transport-level failure talking to the media host (timeout, DNS, reset)."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Upstream request failed: {reason}")
