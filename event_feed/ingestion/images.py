"""
Placeholder image allocation.

Every event in a published list gets a cover image, and no two events in the
same list share one. Events without a usable image, or whose image was already
assigned earlier in the pass, receive a category placeholder chosen
deterministically from their id. When the category pool is exhausted a
per-event synthetic URL is used, so uniqueness always holds.
"""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import quote

from event_feed.schemas.event import EventCategory, UnifiedEvent

IMAGE_KEY_MAX_LENGTH = 300
FALLBACK_IMAGE_TEMPLATE = "https://picsum.photos/seed/{seed}/800/400"

CATEGORY_PLACEHOLDER_IMAGES: dict[EventCategory, tuple[str, ...]] = {
    EventCategory.MUSIC: (
        "https://images.unsplash.com/photo-1514525253161-7a46d19cd819?w=800&q=80",
        "https://images.unsplash.com/photo-1493225457124-a3eb161ffa5f?w=800&q=80",
        "https://images.unsplash.com/photo-1470225620780-dba8ba36b745?w=800&q=80",
    ),
    EventCategory.SPORTS: (
        "https://images.unsplash.com/photo-1461896836934-affe60773b0f?w=800&q=80",
        "https://images.unsplash.com/photo-1574629810360-7efbbe195018?w=800&q=80",
        "https://images.unsplash.com/photo-1534438327276-14e5300c3a48?w=800&q=80",
    ),
    EventCategory.ARTS: (
        "https://images.unsplash.com/photo-1536924940846-227afb31e2a5?w=800&q=80",
        "https://images.unsplash.com/photo-1561214115-f2f134cc4912?w=800&q=80",
        "https://images.unsplash.com/photo-1518998053901-5348d3961a04?w=800&q=80",
    ),
    EventCategory.FOOD: (
        "https://images.unsplash.com/photo-1504674900247-0877df9cc836?w=800&q=80",
        "https://images.unsplash.com/photo-1556910103-1c02745aae4d?w=800&q=80",
        "https://images.unsplash.com/photo-1414235077428-338989a2e8c0?w=800&q=80",
    ),
    EventCategory.TECHNOLOGY: (
        "https://images.unsplash.com/photo-1517694712202-14dd9538aa97?w=800&q=80",
        "https://images.unsplash.com/photo-1498050108023-c5249f4df085?w=800&q=80",
        "https://images.unsplash.com/photo-1504384308090-c894fd59fec8?w=800&q=80",
    ),
    EventCategory.BUSINESS: (
        "https://images.unsplash.com/photo-1540575467063-178a50c2df87?w=800&q=80",
        "https://images.unsplash.com/photo-1475721027785-f74eccf877e2?w=800&q=80",
        "https://images.unsplash.com/photo-1522071820081-009f0129c71c?w=800&q=80",
    ),
    EventCategory.EDUCATION: (
        "https://images.unsplash.com/photo-1522202176988-66273c2fd55f?w=800&q=80",
        "https://images.unsplash.com/photo-1503676260728-1c00da094a0b?w=800&q=80",
        "https://images.unsplash.com/photo-1523240795612-9a054b0db644?w=800&q=80",
    ),
    EventCategory.HEALTH: (
        "https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?w=800&q=80",
        "https://images.unsplash.com/photo-1506126613408-044406db7570?w=800&q=80",
        "https://images.unsplash.com/photo-1571019614242-c5c5dee9f50b?w=800&q=80",
    ),
    EventCategory.FAMILY: (
        "https://images.unsplash.com/photo-1503454537195-1dcabb73ffb9?w=800&q=80",
        "https://images.unsplash.com/photo-1587654780291-39c9404d746b?w=800&q=80",
        "https://images.unsplash.com/photo-1476703993599-0035a21b17a9?w=800&q=80",
    ),
    EventCategory.OTHER: (
        "https://images.unsplash.com/photo-1523580494863-6fe30389c534?w=800&q=80",
        "https://images.unsplash.com/photo-1511578314322-379afb476865?w=800&q=80",
        "https://images.unsplash.com/photo-1540575467063-178a50c2df87?w=800&q=80",
    ),
}


def string_hash(value: str) -> int:
    """
    Non-negative 32-bit string hash (``h = h * 31 + unit`` over UTF-16 units).

    Stable across processes, unlike the builtin ``hash``.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def normalize_image_key(url: str | None) -> str:
    """Key under which two cover images count as the same picture."""
    u = (url or "").strip()
    if not u:
        return ""
    return u.split("?", 1)[0].lower()[:IMAGE_KEY_MAX_LENGTH]


def placeholder_pool(category: str | EventCategory | None) -> tuple[str, ...]:
    key = category if isinstance(category, EventCategory) else EventCategory.from_value(category)
    return CATEGORY_PLACEHOLDER_IMAGES.get(key or EventCategory.OTHER, CATEGORY_PLACEHOLDER_IMAGES[EventCategory.OTHER])


def placeholder_for_event(event_id: str, category: str | EventCategory | None) -> str:
    """Deterministic placeholder for an event, ignoring what is already in use."""
    pool = placeholder_pool(category)
    return pool[string_hash(str(event_id)) % len(pool)]


def fallback_image_url(event_id: str, attempt: int = 0) -> str:
    seed = str(event_id) if attempt == 0 else f"{event_id}-{attempt}"
    return FALLBACK_IMAGE_TEMPLATE.format(seed=quote(seed, safe=""))


def unique_placeholder_for_event(
    event_id: str,
    category: str | EventCategory | None,
    seen_keys: set[str],
) -> str:
    """
    Pick the first unused placeholder, probing the pool from the id's slot.

    Args:
        event_id: Event id, seeds the starting slot
        category: Event category, selects the pool (unknown -> other)
        seen_keys: Normalized image keys already assigned in this pass

    Returns:
        An image URL whose normalized key is not in ``seen_keys``
    """
    pool = placeholder_pool(category)
    start = string_hash(str(event_id)) % len(pool)
    for offset in range(len(pool)):
        candidate = pool[(start + offset) % len(pool)]
        key = normalize_image_key(candidate)
        if key and key not in seen_keys:
            return candidate

    attempt = 0
    while True:
        candidate = fallback_image_url(event_id, attempt)
        if normalize_image_key(candidate) not in seen_keys:
            return candidate
        attempt += 1


def ensure_unique_images(events: Sequence[UnifiedEvent]) -> list[UnifiedEvent]:
    """
    Give every event a cover image that is unique within ``events``.

    Events keep their own image when it is present and not yet used; the rest
    are copied with an allocated placeholder. Input order is preserved.
    """
    seen_keys: set[str] = set()
    result: list[UnifiedEvent] = []

    for event in events:
        key = normalize_image_key(event.cover_image)
        if key and key not in seen_keys:
            seen_keys.add(key)
            result.append(event)
            continue

        placeholder = unique_placeholder_for_event(event.id, event.category, seen_keys)
        seen_keys.add(normalize_image_key(placeholder))
        result.append(event.model_copy(update={"cover_image": placeholder}))

    return result
