"""
Driver for the F-Droid main repository.
"""

import logging
from typing import Any
from urllib.parse import quote

from apk_downloader.exceptions import AppNotFoundError

from .base import HttpSourceDriver

log = logging.getLogger(__name__)


class FDroidDriver(HttpSourceDriver):
    """
    Resolves the suggested version of an app through the F-Droid API, then
    downloads that build from the repository.
    """

    name = "fdroid"
    API_URL = "https://f-droid.org/api/v1/packages/{app_id}"
    REPO_URL = "https://f-droid.org/repo/{app_id}_{version_code}.apk"

    async def fetch(self, identifier: str) -> bytes:
        app_id = quote(identifier, safe="._")
        meta = (await self._get(self.API_URL.format(app_id=app_id), identifier)).json()
        version_code = self.pick_version_code(identifier, meta)
        log.debug(f"F-Droid suggests version code {version_code} for {identifier}")

        response = await self._get(
            self.REPO_URL.format(app_id=app_id, version_code=version_code), identifier
        )
        return self.validate_apk(identifier, response.body)

    @staticmethod
    def pick_version_code(identifier: str, meta: Any) -> int:
        """
        Returns the suggested version code, or the newest published one.
        """
        if not isinstance(meta, dict):
            raise AppNotFoundError(f"F-Droid returned no metadata for '{identifier}'.")
        if suggested := meta.get("suggestedVersionCode"):
            return int(suggested)

        codes = [
            int(package["versionCode"])
            for package in meta.get("packages") or []
            if isinstance(package, dict) and package.get("versionCode")
        ]
        if not codes:
            raise AppNotFoundError(f"F-Droid lists no builds for '{identifier}'.")
        return max(codes)
