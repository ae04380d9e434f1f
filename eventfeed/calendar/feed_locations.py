"""Location links: registry prefix matching with a map-search fallback."""

import json
import logging
from collections.abc import Sequence
from urllib.parse import quote

from eventfeed.calendar.feed_models import SpaceEntry
from eventfeed.feed_exceptions import SpaceRegistryError

logger = logging.getLogger(__name__)

DEFAULT_SPACE_URL_TEMPLATE = "https://navi.jyu.fi/space/{id}"
DEFAULT_MAP_SEARCH_URL_TEMPLATE = "https://www.google.com/maps/search/?api=1&query={query}"


def parse_spaces(document: str) -> list[SpaceEntry]:
    """Parse the registry document ``{"items": [{"spaceLabel", "id"}, ...]}``.

    Items without a non-empty string label or a string id are skipped.

    Raises:
        SpaceRegistryError: If the document is not JSON or has no item list
    """
    try:
        payload = json.loads(document)
    except (json.JSONDecodeError, TypeError) as e:
        raise SpaceRegistryError(f"Space registry is not valid JSON: {e}") from e

    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise SpaceRegistryError("spaces are expressed in an unrecognized format")

    spaces = []
    for item in items:
        if not isinstance(item, dict):
            continue
        label = item.get("spaceLabel")
        space_id = item.get("id")
        if isinstance(label, str) and label and isinstance(space_id, str):
            spaces.append(SpaceEntry(label_prefix=label, id=space_id))
    logger.debug("Parsed %d spaces from %d registry items", len(spaces), len(items))
    return spaces


def url_for_location(
    location: str,
    spaces: Sequence[SpaceEntry],
    space_url_template: str = DEFAULT_SPACE_URL_TEMPLATE,
    map_search_url_template: str = DEFAULT_MAP_SEARCH_URL_TEMPLATE,
) -> str:
    """Link for a free-text location.

    The first space whose label is a (case-sensitive) prefix of the location
    wins; otherwise a map search for the full text is returned.
    """
    for space in spaces:
        if location.startswith(space.label_prefix):
            return space_url_template.format(id=space.id)

    return map_search_url_template.format(query=quote(location, safe=""))
