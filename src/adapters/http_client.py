"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza base URL, timeouts y headers (token Bearer, JSON) para el manager.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings, Target

USER_AGENT = "ferrawin-sync/1.0"


def build_async_client(
    settings: AppSettings | None = None,
    *,
    target: Target = Target.LOCAL,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` apuntando al manager del destino.

    Por qué un builder:
    - Centraliza timeouts/headers para que sync, backfill y doctor se comporten igual.
    - El destino (local/production) decide URL y token en un único sitio.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    token = settings.target_token(target)
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.target_url(target),
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )
