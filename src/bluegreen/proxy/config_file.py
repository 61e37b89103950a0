"""Atomic access to the reverse proxy's upstream configuration file."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Union

from ..ports.manager import UPSTREAM_PATTERN
from ..shared.errors import ConfigParseError

logger = logging.getLogger(__name__)

# Round-trips arbitrary bytes through str without loss
ENCODING = 'utf-8'
ERRORS = 'surrogateescape'


def rewrite_upstream_port(text: str, old_port: int, new_port: int) -> str:
    """Replace the port on every upstream line that points at ``old_port``.

    Raises:
        ConfigParseError: If no upstream line references ``old_port``
    """
    replaced = 0

    def _swap(match):
        nonlocal replaced
        if int(match.group('port')) != old_port:
            return match.group(0)
        replaced += 1
        start, end = match.span('port')
        offset = match.start(0)
        whole = match.group(0)
        return f"{whole[:start - offset]}{new_port}{whole[end - offset:]}"

    new_text = UPSTREAM_PATTERN.sub(_swap, text)
    if not replaced:
        raise ConfigParseError(f"No upstream line references port {old_port}")
    return new_text


class ProxyConfigFile:
    """The single upstream config file the proxy includes.

    Writes go to a temporary file in the same directory followed by
    ``os.replace``, so readers see either the old or the new content.
    Symlinked configs are written through to their target.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    @property
    def real_path(self) -> Path:
        return self.path.resolve()

    def read_bytes(self) -> bytes:
        return self.real_path.read_bytes()

    def read_text(self) -> str:
        return self.read_bytes().decode(ENCODING, ERRORS)

    def write_bytes(self, data: bytes) -> None:
        """Atomically replace the file content, keeping its permissions."""
        target = self.real_path
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
        try:
            with os.fdopen(fd, 'wb') as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            if target.exists():
                shutil.copymode(str(target), tmp_name)
            os.replace(tmp_name, str(target))
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug(f"Wrote {len(data)} bytes to {target}")

    def write_text(self, text: str) -> None:
        self.write_bytes(text.encode(ENCODING, ERRORS))

    def restore(self, original: bytes) -> None:
        """Put back content captured before an edit."""
        self.write_bytes(original)
        logger.info(f"Restored {self.path} to its previous content")
