# src/benor/transport/http.py
"""
HTTP Transport - POSTs consensus messages to peer nodes' /message route

Peers are addressed by a well-known host and base port plus node index.
"""

import logging
from typing import Callable, Optional

import aiohttp

from ..config import Settings, get_settings
from ..consensus.messages import ConsensusMessage
from .base import Transport

logger = logging.getLogger("benor.transport.http")


class PeerSendError(Exception):
    """A peer answered a message POST with a non-2xx status"""
    def __init__(self, peer_id: int, status: int):
        self.peer_id = peer_id
        self.status = status
        super().__init__(f"Node {peer_id} answered HTTP {status}")


class HttpTransport(Transport):
    """
    aiohttp-backed transport.

    A single ClientSession is opened lazily and shared by every send.
    """

    def __init__(
        self,
        total_nodes: int,
        settings: Optional[Settings] = None,
        url_for: Optional[Callable[[int], str]] = None,
        send_timeout: Optional[float] = None
    ):
        super().__init__(total_nodes)
        self.settings = settings or get_settings()
        self._url_for = url_for or self.settings.node_url
        self._timeout = aiohttp.ClientTimeout(
            total=send_timeout if send_timeout is not None else self.settings.SEND_TIMEOUT
        )
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _deliver(self, peer_id: int, message: ConsensusMessage) -> None:
        session = self._get_session()
        async with session.post(
            f"{self._url_for(peer_id)}/message",
            json=message.model_dump()
        ) as response:
            if response.status >= 300:
                raise PeerSendError(peer_id, response.status)

    async def close(self) -> None:
        await super().close()
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP transport session closed")
