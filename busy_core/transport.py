"""Remote transports for Busy.

The sync engine only needs two calls: fetch the remote snapshot text and
push a new one. The remote is chosen by the BUSY_REMOTE setting.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from typing_extensions import Protocol

from busy_core.constants import ENV_REMOTE, SNAPSHOT_FILENAME
from busy_core.exceptions import CorruptionError, NotConfiguredError, TransportError
from busy_core.utils import atomic_write

__all__ = [
    "Transport",
    "FileTransport",
    "get_remote",
    "get_transport",
]

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Two-method contract every remote implements."""

    def fetch(self) -> Optional[str]:
        """Return the remote snapshot text, or None if the remote has none yet.

        Raises:
            TransportError: If the remote can't be reached
            CorruptionError: If the remote snapshot text can't be decoded
        """
        ...

    def push(self, data: str) -> None:
        """Replace the remote snapshot with data.

        Raises:
            TransportError: If the remote can't be reached or rejects data
        """
        ...


class FileTransport:
    """Remote kept as a snapshot file in a directory (shared drive, mount, ...)."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory).expanduser()
        self.path = self.directory / SNAPSHOT_FILENAME

    def __repr__(self) -> str:
        return f"FileTransport({str(self.directory)!r})"

    def fetch(self) -> Optional[str]:
        if not self.directory.is_dir():
            raise TransportError(f"Remote directory {self.directory} is not reachable")
        try:
            data = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("No remote snapshot at %s yet", self.path)
            return None
        except OSError as e:
            raise TransportError(f"Can't read remote snapshot {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CorruptionError(f"Remote snapshot {self.path} is not valid UTF-8: {e}") from e
        logger.debug("Fetched %d bytes from %s", len(data), self.path)
        return data

    def push(self, data: str) -> None:
        if not self.directory.is_dir():
            raise TransportError(f"Remote directory {self.directory} is not reachable")
        try:
            atomic_write(self.path, data)
        except OSError as e:
            raise TransportError(f"Can't write remote snapshot {self.path}: {e}") from e
        logger.debug("Pushed %d bytes to %s", len(data), self.path)


def get_remote() -> Optional[str]:
    """Get the configured remote endpoint (BUSY_REMOTE), or None."""
    remote = os.environ.get(ENV_REMOTE, "").strip()
    return remote or None


def get_transport(remote: Optional[str] = None) -> Transport:
    """Build the transport for a remote endpoint.

    Args:
        remote: Endpoint, defaults to BUSY_REMOTE. A directory path or file:// URL.

    Raises:
        NotConfiguredError: If no remote is configured or its scheme is unsupported
    """
    if remote is None:
        remote = get_remote()
    if not remote:
        raise NotConfiguredError(
            f"Sync is not configured, set the {ENV_REMOTE} environment variable"
        )

    parsed = urlparse(remote)
    if parsed.scheme == "file":
        return FileTransport(parsed.path)
    if parsed.scheme:
        raise NotConfiguredError(f"Unsupported remote scheme '{parsed.scheme}' in {remote}")
    return FileTransport(remote)
