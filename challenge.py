"""Anti-bot interstitial detection (we detect, we never bypass)."""

from __future__ import annotations

# Phrases seen on Cloudflare / WAF interstitials; any single match flags the page.
CHALLENGE_MARKERS: tuple[str, ...] = (
    "verifying you are human",
    "please enable javascript",
    "checking your browser",
    "captcha",
    "access denied",
    "cloudflare",
    "just a moment",
)


def is_challenge(body: str | None) -> bool:
    """Return True if the page body looks like a bot-verification page."""
    if not body:
        return False
    lowered = body.lower()
    return any(marker in lowered for marker in CHALLENGE_MARKERS)
