"""
Client IP detection for request logging

- Uses django-ipware for proxy-aware IP detection
- Honors only the proxies listed in IPWARE_TRUSTED_PROXY_LIST
- Falls back to REMOTE_ADDR so logging never fails a request

Usage:
    from apps.common.request_ip import get_safe_client_ip

    def my_view(request):
        client_ip = get_safe_client_ip(request)
"""

from __future__ import annotations

from django.conf import settings
from django.http import HttpRequest
from ipware import get_client_ip


def get_safe_client_ip(request: HttpRequest) -> str:
    """
    Get the client IP address, trusting forwarded headers only from known proxies.

    Returns '127.0.0.1' when nothing usable is available (test client,
    management commands building fake requests).
    """
    trusted_proxies = list(getattr(settings, 'IPWARE_TRUSTED_PROXY_LIST', []))
    remote_addr = request.META.get('REMOTE_ADDR') or '127.0.0.1'

    if not trusted_proxies:
        # Dev/local: never trust X-Forwarded-For
        return remote_addr

    client_ip, _is_routable = get_client_ip(request, proxy_trusted_ips=trusted_proxies)
    return client_ip or remote_addr
