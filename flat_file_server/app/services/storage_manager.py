from pathlib import Path
from typing import AsyncIterable, AsyncIterator
import logging

import aiofiles
import aiofiles.os

from flat_file_server.app.errors import Conflict, NotFound, PayloadTooLarge, ServerError
from flat_file_server.app.services.path_validator import resolve_path
from flat_file_server.config import ServerConfig
from flat_file_server.logger_config import LOGGER_NAME
from flat_file_server.monitor import FailureMonitor

logger = logging.getLogger(LOGGER_NAME)

INDEX_DOCUMENT = "index.html"


class StorageManager:
    def __init__(self, config: ServerConfig, monitor: FailureMonitor):
        self.files_root = config.files_root
        self.public_root = config.public_root
        self.max_file_size = config.max_file_size
        self.chunk_size = config.chunk_size
        self.monitor = monitor

    async def initialize(self):
        """Create the storage directories and report what is already stored."""
        logger.info("Initializing storage manager...")

        self.files_root.mkdir(exist_ok=True, parents=True)
        self.public_root.mkdir(exist_ok=True, parents=True)
        logger.debug(f"Storage directories created/verified: {self.files_root}, {self.public_root}")

        stored_files = 0
        for file in self.files_root.glob("*"):
            if file.is_file():
                stored_files += 1
        logger.info(f"Found {stored_files} stored files in {self.files_root}")

        if not (self.public_root / INDEX_DOCUMENT).is_file():
            logger.warning(f"No {INDEX_DOCUMENT} in {self.public_root}, GET / will return 404")

    def resolve(self, filename: str) -> Path:
        return resolve_path(filename, self.files_root)

    @property
    def index_path(self) -> Path:
        return self.public_root / INDEX_DOCUMENT

    async def open_file(self, file_path: Path):
        """Open a file for streaming, mapping OS errors to HTTP errors."""
        try:
            file = await aiofiles.open(file_path, 'rb')
        except FileNotFoundError:
            logger.info(f"File not found: {file_path.name}")
            raise NotFound()
        except OSError:
            logger.error(f"Error opening {file_path.name}", exc_info=True)
            self.monitor.fail(f"open {file_path.name}")
            raise ServerError()

        self.monitor.pass_()
        return file

    async def iter_file(self, file) -> AsyncIterator[bytes]:
        """Yield the content of an open file, closing it on every exit path."""
        try:
            while chunk := await file.read(self.chunk_size):
                yield chunk
        except OSError:
            # Headers are already sent, the response can only be cut short
            logger.error("Error while streaming file", exc_info=True)
            self.monitor.fail("read")
        finally:
            await file.close()

    async def save_file(self, file_path: Path, chunks: AsyncIterable[bytes]) -> int:
        """Stream chunks into a newly created file.

        The file is opened in exclusive-create mode, so of two concurrent
        uploads for one name only the first succeeds. Whenever the upload does
        not complete (size ceiling, write error, client disconnect,
        cancellation) the partial file is removed.

        Returns:
            int: number of bytes written
        """
        created = False
        completed = False
        bytes_written = 0

        try:
            async with aiofiles.open(file_path, 'xb') as file:
                created = True
                async for chunk in chunks:
                    bytes_written += len(chunk)
                    if bytes_written > self.max_file_size:
                        logger.info(
                            f"Upload of {file_path.name} exceeded {self.max_file_size} bytes, aborting"
                        )
                        raise PayloadTooLarge(headers={"Connection": "close"})
                    await file.write(chunk)
            completed = True
        except FileExistsError:
            logger.info(f"File already exists: {file_path.name}")
            raise Conflict()
        except OSError:
            logger.error(f"Error writing {file_path.name}", exc_info=True)
            self.monitor.fail(f"write {file_path.name}")
            raise ServerError()
        finally:
            # Only a file this request created may be removed
            if created and not completed:
                await self._remove_partial(file_path)

        self.monitor.pass_()
        return bytes_written

    async def _remove_partial(self, file_path: Path):
        try:
            await aiofiles.os.unlink(file_path)
            logger.debug(f"Removed partial upload: {file_path.name}")
        except FileNotFoundError:
            pass
        except OSError:
            # Nothing left to tell the client; report and keep serving
            logger.critical(f"Could not remove partial upload {file_path}", exc_info=True)
            self.monitor.fail(f"cleanup {file_path.name}")

    async def delete_file(self, file_path: Path):
        """Delete a stored file."""
        try:
            await aiofiles.os.unlink(file_path)
        except FileNotFoundError:
            logger.info(f"File not found for deletion: {file_path.name}")
            raise NotFound()
        except OSError:
            logger.error(f"Error deleting {file_path.name}", exc_info=True)
            self.monitor.fail(f"delete {file_path.name}")
            raise ServerError()

        self.monitor.pass_()
