import logging

from starlette.requests import ClientDisconnect
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from flat_file_server.logger_config import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class FileStreamingResponse(StreamingResponse):
    """Stream an open file and release it however the response ends."""

    def __init__(self, file, content, **kwargs):
        super().__init__(content, **kwargs)
        self.file = file

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (ClientDisconnect, OSError):
            # The peer is gone, there is nobody left to answer
            logger.info(f"Client disconnected during download of {scope.get('path')!r}")
        finally:
            # Finish a generator left suspended at a yield, then the handle itself
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()
            await self.file.close()
