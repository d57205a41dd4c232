"""
Fetches the AndroidRank list of the most popular Play Store apps.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from apk_downloader.exceptions import ConfigurationError

from .csv_list import ParsedList, parse_csv_text

log = logging.getLogger(__name__)

ANDROID_RANK_URL = "https://www.androidrank.org/applist.csv"


async def fetch_android_rank_list(
    session: Optional[aiohttp.ClientSession] = None, url: str = ANDROID_RANK_URL
) -> ParsedList:
    """
    Downloads the AndroidRank app list; app IDs are in the first column.

    Raises:
        ConfigurationError: If the list cannot be retrieved.
    """
    owns_session = session is None
    if owns_session:
        session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=60))

    log.info(f"Fetching app list from [dim]{url}[/dim]")
    try:
        async with session.get(url) as response:
            response.raise_for_status()
            text = await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise ConfigurationError(f"Could not fetch the AndroidRank list: {e}") from e
    finally:
        if owns_session:
            await session.close()

    return parse_csv_text(text, field=1, source="androidrank")
