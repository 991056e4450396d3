from __future__ import annotations
from urllib.parse import quote

from schemas import User

DISCORD_CDN = "https://cdn.discordapp.com/avatars"
FALLBACK_URL = "https://ui-avatars.com/api/?name="


class AvatarService:
    """Resolve the avatar image URL shown for a user."""

    @staticmethod
    def avatar_url(user: User) -> str:
        """Discord avatar first, then a stored URL, then generated initials."""
        discord = user.discord
        if discord is not None and discord.avatar:
            return f"{DISCORD_CDN}/{discord.id}/{discord.avatar}.png"
        if user.avatar_url:
            return user.avatar_url
        return FALLBACK_URL + quote(user.name or "User", safe="!*'()")

    @staticmethod
    def initials(name: str) -> str:
        parts = [p for p in (name or "").split() if p]
        if not parts:
            return "U"
        return "".join(p[0] for p in parts[:2]).upper()
