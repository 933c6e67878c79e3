"""
Upstream Client - Fetch PKGBUILDs and source tarballs from the Arch GitLab
"""

import logging
from pathlib import Path

import requests

from nompac import config
from nompac.common.errors import NetworkError

logger = logging.getLogger(__name__)


def gitlab_project_name(package_name: str) -> str:
    """GitLab project paths cannot contain '+', the packaging group spells it out"""
    return package_name.replace("+", "plus")


class UpstreamClient:
    """Client for the Arch Linux packaging repositories on GitLab"""

    def __init__(self, timeout: float = config.HTTP_TIMEOUT):
        self.timeout = timeout

    def get_pkgbuild(self, package_name: str) -> str:
        """
        Fetch the current PKGBUILD of an official package

        Args:
            package_name: Package name

        Returns:
            PKGBUILD text

        Raises:
            NetworkError: on transport failure or non-success status
        """
        url = config.UPSTREAM_PKGBUILD_URL.format(project=gitlab_project_name(package_name))

        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Fetching PKGBUILD of {package_name} failed: {e}") from e

        logger.debug(f"Fetched PKGBUILD for {package_name} ({len(response.text)} bytes)")
        return response.text

    def download_tarball(self, package_name: str, version: str, destination) -> Path:
        """Download the packaging sources tagged ``version`` to ``destination``"""
        project = gitlab_project_name(package_name)
        url = config.UPSTREAM_TARBALL_URL.format(project=project, version=version)
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            with requests.get(url, timeout=self.timeout, stream=True) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=65536):
                        f.write(chunk)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Downloading {package_name}-{version}.tar.gz failed: {e}") from e

        logger.info(f"✅ Successfully downloaded {destination.name}")
        return destination
