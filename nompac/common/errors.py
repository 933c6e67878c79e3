"""
Error types shared by all nompac modules
"""


class NompacError(Exception):
    """Base class for every error raised by nompac"""


class ConfigError(NompacError):
    """Configuration file is missing, malformed or incomplete. Fatal."""


class NetworkError(NompacError):
    """Upstream fetch failed (transport error or non-success status)"""


class ParseError(NompacError):
    """A PKGBUILD does not have the expected shape"""


class NotInstalledError(NompacError):
    """Package is not present in the local pacman database"""


class CommandError(NompacError):
    """Shell command exited with a non-zero status"""

    def __init__(self, result):
        self.result = result
        super().__init__(
            f"Command failed with exit code {result.returncode}: {result.command}"
        )
