"""Plain-text inventory listing.

Used as the renderer's fixed context and as the reply when no renderer is
configured or the renderer call fails.
"""

from .item import Item

EMPTY_REPLY_FALLBACK = "Not available in the library inventory."
NO_MATCH_CONTEXT = "No books in the library inventory match this query."


def format_inventory_context(items: list[Item]) -> str:
    """Render items as the numbered Title/Author/Copies/Location listing."""
    if not items:
        return NO_MATCH_CONTEXT

    entries = []
    for index, item in enumerate(items, start=1):
        lines = [
            f"• {index}. Title: {item.title or 'Unknown Title'}",
            f"  Author: {item.author or 'Unknown Author'}",
            f"  Copies: {item.copies}",
            f"  Location: {item.location or 'Unknown Location'}",
        ]
        if item.max_pages is not None:
            lines.append(f"  Max Pages: {item.max_pages}")
        entries.append("\n".join(lines))
    return "\n\n".join(entries)
