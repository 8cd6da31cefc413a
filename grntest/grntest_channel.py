"""
Byte stream to a running groonga process.

Responses are not framed, so `drain` waits for the first bytes and then pulls
whatever is already buffered without blocking.
"""
from __future__ import annotations

import logging
import os
import selectors
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, List, Sequence

from grntest.grntest_datatypes import ChannelError

LOGGER = logging.getLogger(__name__)

READ_CHUNK_SIZE = 65535
DEFAULT_FIRST_TIMEOUT = 1.0


class OutputChannel:
    """Request writer plus a polling response reader over one peer process."""

    def __init__(self, writer: BinaryIO, reader, first_timeout: float = DEFAULT_FIRST_TIMEOUT):
        self._writer = writer
        # Either a file object or a raw descriptor.
        self._fd = reader if isinstance(reader, int) else reader.fileno()
        self.first_timeout = first_timeout

    def write(self, line: bytes) -> None:
        try:
            self._writer.write(line)
            self._writer.flush()
        except (BrokenPipeError, ValueError, OSError) as e:
            raise ChannelError(f"failed to send command: {e}") from e
        LOGGER.debug("sent %d bytes", len(line))

    def drain(self, first_timeout: float | None = None) -> bytes:
        timeout = self.first_timeout if first_timeout is None else first_timeout
        chunks: List[bytes] = []
        with selectors.DefaultSelector() as selector:
            selector.register(self._fd, selectors.EVENT_READ)
            while selector.select(timeout):
                chunk = os.read(self._fd, READ_CHUNK_SIZE)
                if not chunk:
                    # Peer closed its end.
                    break
                chunks.append(chunk)
                timeout = 0
        output = b"".join(chunks)
        LOGGER.debug("drained %d bytes in %d reads", len(output), len(chunks))
        return output


@contextmanager
def spawn_groonga(command: Sequence[str] | str, db_path: Path,
                  first_timeout: float = DEFAULT_FIRST_TIMEOUT,
                  shutdown_timeout: float = 10.0) -> Iterator[OutputChannel]:
    """Start `<groonga> -n <db_path>` and yield a channel bound to its stdio."""
    argv = [command] if isinstance(command, str) else list(command)
    argv += ["-n", str(db_path)]
    LOGGER.debug("spawning %s", argv)
    process = subprocess.Popen(argv, stdin=subprocess.PIPE, stdout=subprocess.PIPE)
    try:
        yield OutputChannel(process.stdin, process.stdout, first_timeout=first_timeout)
    finally:
        for stream in (process.stdin, process.stdout):
            try:
                stream.close()
            except OSError:
                pass
        try:
            process.wait(timeout=shutdown_timeout)
        except subprocess.TimeoutExpired:
            LOGGER.warning("groonga did not exit within %ss; killing it", shutdown_timeout)
            process.kill()
            process.wait()
        LOGGER.debug("groonga exited with status %s", process.returncode)
