"""Client address resolution shared by the rate limiter and the access log."""

from starlette.requests import Request


def client_ip(request: Request, trust_proxy: bool = True) -> str:
    """
    Address of the caller.

    With `trust_proxy` one reverse proxy is trusted: the address it appended
    to X-Forwarded-For (the last entry) wins. Earlier entries are client
    supplied and ignored. Without it the socket peer is used.
    """
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For", "")
        last_hop = forwarded.split(",")[-1].strip()
        if last_hop:
            return last_hop
    return getattr(request.client, "host", "unknown") if request.client else "unknown"
