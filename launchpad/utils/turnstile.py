"""
Bot verification (Cloudflare Turnstile).

verify_turnstile_token() asks Cloudflare whether a widget token is genuine.
Without TURNSTILE_SECRET_KEY the check is skipped and always passes.
"""

import logging

import httpx

from launchpad.core.config import settings

logger = logging.getLogger(__name__)


async def verify_turnstile_token(token: str) -> bool:
    secret = settings.TURNSTILE_SECRET_KEY
    if not secret:
        logger.warning("TURNSTILE_SECRET_KEY not set; skipping Turnstile verification")
        return True

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                settings.TURNSTILE_VERIFY_URL,
                data={"secret": secret, "response": token},
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Turnstile verification request failed: {e}")
        return False

    return data.get("success") is True
