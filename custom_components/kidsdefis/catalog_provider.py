# File: catalog_provider.py
"""Remote catalog provider for default challenges and rewards.

Fetches a JSON array of catalog rows from a configured URL through Home
Assistant's shared aiohttp session and maps them to the local row layout.
The provider is read-only; importing the rows is CatalogManager's job.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import aiohttp
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from . import const
from .exceptions import CatalogFetchError

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_CHALLENGE_FIELDS = (
    const.DATA_CHALLENGE_TITLE,
    const.DATA_CHALLENGE_DESCRIPTION,
    const.DATA_CHALLENGE_CATEGORY,
    const.DATA_CHALLENGE_LOCATION,
    const.DATA_CHALLENGE_DURATION_MIN,
    const.DATA_CHALLENGE_POINTS_DEFAULT,
    const.DATA_CHALLENGE_PHOTO_REQUIRED,
    const.DATA_CHALLENGE_AGE_MIN,
    const.DATA_CHALLENGE_AGE_MAX,
)
_TEXT_FIELDS = (
    const.DATA_CHALLENGE_TITLE,
    const.DATA_CHALLENGE_DESCRIPTION,
    const.DATA_CHALLENGE_CATEGORY,
    const.DATA_CHALLENGE_LOCATION,
)


async def async_fetch_catalog_rows(hass: HomeAssistant, url: str) -> list[dict[str, Any]]:
    """Fetch raw catalog rows from ``url``.

    Raises:
        CatalogFetchError: On HTTP errors, timeouts or an unexpected payload.
    """
    session = async_get_clientsession(hass)
    try:
        async with asyncio.timeout(const.CATALOG_FETCH_TIMEOUT):
            async with session.get(url) as response:
                if response.status != 200:
                    raise CatalogFetchError(
                        f"HTTP {response.status} fetching catalog from {url}"
                    )
                payload = await response.json(content_type=None)
    except TimeoutError as err:
        raise CatalogFetchError(f"Timed out fetching catalog from {url}") from err
    except (aiohttp.ClientError, ValueError) as err:
        raise CatalogFetchError(f"Failed to fetch catalog from {url}: {err}") from err

    if not isinstance(payload, list):
        raise CatalogFetchError("Unexpected catalog response shape")
    return [row for row in payload if isinstance(row, dict)]


def map_challenge_row(raw: dict[str, Any]) -> dict[str, Any]:
    """Keep known challenge fields; missing text fields become empty strings."""
    row: dict[str, Any] = {field: raw.get(field) for field in _CHALLENGE_FIELDS}
    for field in _TEXT_FIELDS:
        row[field] = row[field] or ""
    return row


def map_reward_row(raw: dict[str, Any]) -> dict[str, Any]:
    """Map a provider reward (``points_required``) to a local reward (``cost``)."""
    return {
        const.DATA_REWARD_TITLE: raw.get(const.DATA_REWARD_TITLE) or "",
        const.DATA_REWARD_DESCRIPTION: raw.get(const.DATA_REWARD_DESCRIPTION) or "",
        const.DATA_REWARD_COST: int(raw.get(const.CATALOG_POINTS_REQUIRED) or 0),
        const.DATA_REWARD_CATEGORY: raw.get(const.DATA_REWARD_CATEGORY) or "",
        const.DATA_CREATED_BY: const.CATALOG_CREATED_BY_SYSTEM,
    }


async def async_fetch_challenges(hass: HomeAssistant, url: str) -> list[dict[str, Any]]:
    """Fetch and map default challenges."""
    return [map_challenge_row(row) for row in await async_fetch_catalog_rows(hass, url)]


async def async_fetch_rewards(hass: HomeAssistant, url: str) -> list[dict[str, Any]]:
    """Fetch and map default rewards."""
    return [map_reward_row(row) for row in await async_fetch_catalog_rows(hass, url)]
