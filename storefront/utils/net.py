# storefront/utils/net.py
from flask import request


def get_client_ip():
    # honor proxies/load balancers if present
    xff = request.headers.get('X-Forwarded-For', '')
    if xff:
        # first ip in list is original client
        return xff.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr or "unknown"


def get_user_agent():
    return request.headers.get("User-Agent", "") or ""


def session_key():
    """Stable per-visitor key: session cookie when present, else ip + truncated UA."""
    sid = request.cookies.get("sid") or request.cookies.get("rt")
    if sid:
        return sid
    ua = get_user_agent()[:128]
    return f"{get_client_ip()}|{ua[:32]}"
