# src/benor/api/app.py
"""
Node control surface - FastAPI routes exposing one ConsensusNode

Routes:
- GET  /status    live (200) or faulty (500)
- POST /message   inbound peer message
- GET  /start     run consensus; answers "decided <v>" or "stopped"
- GET  /stop      request a halt
- GET  /getState  {killed, x, decided, k}
- GET  /metrics   send/log counters
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse

from ..consensus.messages import ConsensusMessage, NodeStateSnapshot
from ..consensus.node import ConsensusNode, NodeAlreadyStartedError, NodeStatus

logger = logging.getLogger("benor.api")


def create_node_app(node: ConsensusNode) -> FastAPI:
    """Build the FastAPI application serving a single node"""
    app = FastAPI(
        title=f"Ben-Or Node {node.node_id}",
        description="Randomized binary consensus node",
        version="1.0.0"
    )
    app.state.node = node

    @app.get("/status", response_class=PlainTextResponse)
    async def status():
        node_status = node.status()
        code = 500 if node_status == NodeStatus.FAULTY else 200
        return PlainTextResponse(node_status.value, status_code=code)

    @app.post("/message", response_class=PlainTextResponse)
    async def message(body: ConsensusMessage):
        node.handle_inbound(body)
        return "received"

    @app.get("/start", response_class=PlainTextResponse)
    async def start():
        try:
            result = await node.start()
        except NodeAlreadyStartedError as e:
            logger.warning(str(e))
            raise HTTPException(status_code=409, detail=str(e))
        return result.describe()

    @app.get("/stop", response_class=PlainTextResponse)
    async def stop():
        node.stop()
        return "success"

    @app.get("/getState", response_model=NodeStateSnapshot)
    async def get_state():
        return node.get_state()

    @app.get("/metrics")
    async def metrics() -> Dict[str, Any]:
        return node.metrics()

    return app
