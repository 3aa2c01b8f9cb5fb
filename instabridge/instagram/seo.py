"""SEO text for fetched posts."""

from __future__ import annotations

import re

SERVICE_KEYWORDS = (
    "brows",
    "powderbrows",
    "microblading",
    "lipblush",
    "eyeliner",
    "areola",
)

# Letter first, 3-30 chars, not a hex colour code, not followed by a word char.
_HASHTAG_RE = re.compile(r"#(?![0-9a-fA-F]{3,8}(?![a-zA-Z0-9_]))[a-zA-Z][a-zA-Z0-9_]{2,29}(?![a-zA-Z0-9_])")
_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


class SEOGenerator:
    """Builds hashtag lists and short descriptive text from captions."""

    def __init__(
        self,
        *,
        service_keywords: tuple[str, ...] = SERVICE_KEYWORDS,
        business_name: str = "Pink Ink Cosmetic Tattoo",
        location: str = "Vancouver",
        location_label: str = "Vancouver, Washington",
    ):
        self.service_keywords = service_keywords
        self.business_name = business_name
        self.location = location
        self.location_label = location_label

    def extract_hashtags(self, text: str) -> list[str]:
        """Unique hashtags (without '#') in first-seen order."""
        if not text:
            return []
        tags: list[str] = []
        for match in _HASHTAG_RE.finditer(text):
            tag = match.group(0)[1:]
            if tag in tags or len(tag) < 3 or _HEX_RE.match(tag):
                continue
            tags.append(tag)
        return tags

    def generate_description(self, caption: str, hashtags: list[str] | None = None) -> str:
        parts: list[str] = []
        lower = (caption or "").lower()

        services = self._extract_services(lower, hashtags or [])
        if services:
            parts.append(f"Cosmetic tattoo {' and '.join(services)} service")
        if self.location and self.location in (caption or ""):
            parts.append(f"in {self.location_label}")
        if "before" in lower or "after" in lower:
            parts.append("showing before and after results")
        if "heal" in lower:
            parts.append("demonstrating healing progress")
        if "touch up" in lower:
            parts.append("showing touch-up results")

        description = " ".join(parts)
        if len(description) < 50:
            description = f"Professional cosmetic tattoo work {description}".rstrip()
        return f"{description}. Contact {self.business_name} for professional permanent makeup services."

    def _extract_services(self, lower_caption: str, hashtags: list[str]) -> list[str]:
        found: list[str] = []
        for tag in hashtags:
            for keyword in self.service_keywords:
                if keyword in tag.lower() and keyword not in found:
                    found.append(keyword)
        for keyword in self.service_keywords:
            if keyword in lower_caption and keyword not in found:
                found.append(keyword)
        return found
