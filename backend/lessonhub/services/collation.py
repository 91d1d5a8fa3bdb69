from __future__ import annotations

import unicodedata


def collation_key(value: str | None) -> str:
    """Fold a display name to base strength: accents and case are ignored.

    "Café", "cafe" and "CAFE" share one key, while letters that differ in
    their base form still compare by code point of the folded text.
    """
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return " ".join(stripped.casefold().split())
