# src/benor/network/launcher.py
"""
Network Launcher - brings up N Ben-Or nodes

launch_network() serves every node over HTTP with uvicorn on consecutive
ports (base port + node id) and marks each node ready once its server is
listening. simulate() wires the same nodes through an in-memory network.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import aiohttp
import uvicorn

from ..api.app import create_node_app
from ..config import NodeConfig, Settings, get_settings
from ..consensus.node import ConsensusNode, StartResult
from ..transport.http import HttpTransport
from ..transport.local import InMemoryNetwork
from .readiness import ReadinessBarrier

logger = logging.getLogger("benor.launcher")


def _validate_layout(
    total_nodes: int,
    initial_values: Sequence[Optional[int]],
    faulty_list: Sequence[bool]
) -> None:
    if len(initial_values) != total_nodes:
        raise ValueError(f"Expected {total_nodes} initial values, got {len(initial_values)}")
    if len(faulty_list) != total_nodes:
        raise ValueError(f"Expected {total_nodes} fault flags, got {len(faulty_list)}")


@dataclass
class NetworkHandle:
    """Running HTTP network"""
    nodes: List[ConsensusNode]
    barrier: ReadinessBarrier
    settings: Settings
    servers: List[uvicorn.Server] = field(default_factory=list)
    server_tasks: List[asyncio.Task] = field(default_factory=list)

    def correct_nodes(self) -> List[ConsensusNode]:
        return [n for n in self.nodes if not n.is_faulty]


async def launch_network(
    total_nodes: int,
    max_faults: int,
    initial_values: Sequence[Optional[int]],
    faulty_list: Sequence[bool],
    settings: Optional[Settings] = None,
    config: Optional[NodeConfig] = None,
    startup_timeout: float = 10.0
) -> NetworkHandle:
    """
    Start one uvicorn server per node in the running event loop.

    Returns once every server is listening.
    """
    _validate_layout(total_nodes, initial_values, faulty_list)
    settings = settings or get_settings()
    config = config or NodeConfig.from_settings(settings)
    barrier = ReadinessBarrier(total_nodes)

    handle = NetworkHandle(nodes=[], barrier=barrier, settings=settings)
    for node_id in range(total_nodes):
        node = ConsensusNode(
            node_id=node_id,
            total_nodes=total_nodes,
            max_faults=max_faults,
            initial_value=initial_values[node_id],
            transport=HttpTransport(total_nodes, settings=settings),
            is_faulty=faulty_list[node_id],
            nodes_are_ready=barrier.all_ready,
            config=config,
        )
        server = uvicorn.Server(uvicorn.Config(
            create_node_app(node),
            host=settings.NODE_HOST,
            port=settings.node_port(node_id),
            log_level="warning",
        ))
        handle.nodes.append(node)
        handle.servers.append(server)
        handle.server_tasks.append(asyncio.create_task(server.serve()))

    loop = asyncio.get_running_loop()
    deadline = loop.time() + startup_timeout
    for node_id, (server, task) in enumerate(zip(handle.servers, handle.server_tasks)):
        while not server.started:
            if task.done():
                await stop_network(handle)
                raise RuntimeError(f"Node {node_id} server exited during startup")
            if loop.time() > deadline:
                await stop_network(handle)
                raise TimeoutError(f"Node {node_id} did not start within {startup_timeout}s")
            await asyncio.sleep(0.05)
        barrier.set_node_ready(node_id)
        logger.info(f"Node {node_id} is listening on port {settings.node_port(node_id)}")

    return handle


async def start_consensus(handle: NetworkHandle) -> Dict[int, str]:
    """Hit /start on every node over HTTP and collect the answers"""
    async with aiohttp.ClientSession() as session:

        async def _start(node_id: int) -> str:
            async with session.get(f"{handle.settings.node_url(node_id)}/start") as response:
                return await response.text()

        answers = await asyncio.gather(*(_start(n.node_id) for n in handle.nodes))
    return dict(zip((n.node_id for n in handle.nodes), answers))


async def stop_network(handle: NetworkHandle) -> None:
    """Stop every node and shut its server down"""
    for node in handle.nodes:
        node.stop()
    for server in handle.servers:
        server.should_exit = True
    if handle.server_tasks:
        await asyncio.gather(*handle.server_tasks, return_exceptions=True)
    for node in handle.nodes:
        await node.transport.close()
    logger.info(f"Network of {len(handle.nodes)} nodes stopped")


def build_local_network(
    total_nodes: int,
    max_faults: int,
    initial_values: Sequence[Optional[int]],
    faulty_list: Sequence[bool],
    config: Optional[NodeConfig] = None,
    drop_rate: float = 0.0,
    seed: Optional[int] = None
) -> List[ConsensusNode]:
    """Create nodes connected through an InMemoryNetwork"""
    _validate_layout(total_nodes, initial_values, faulty_list)
    config = config or NodeConfig(round_delay=0.01, readiness_poll_interval=0.01)
    network = InMemoryNetwork(
        total_nodes,
        drop_rate=drop_rate,
        rng=random.Random(seed) if seed is not None else None
    )
    barrier = ReadinessBarrier(total_nodes)

    nodes = []
    for node_id in range(total_nodes):
        node = ConsensusNode(
            node_id=node_id,
            total_nodes=total_nodes,
            max_faults=max_faults,
            initial_value=initial_values[node_id],
            transport=network.transport_for(node_id),
            is_faulty=faulty_list[node_id],
            nodes_are_ready=barrier.all_ready,
            config=config,
            rng=random.Random(seed + node_id) if seed is not None else None,
        )
        network.register(node)
        barrier.set_node_ready(node_id)
        nodes.append(node)
    return nodes


async def run_nodes(nodes: Sequence[ConsensusNode], timeout: Optional[float] = None) -> List[StartResult]:
    """
    Start every node and wait for all of them to finish.

    With a timeout, stop() is sent to every node once it elapses; nodes
    finish the round in flight before returning.
    """
    timer = None
    if timeout is not None:
        def _stop_all():
            logger.info(f"Timeout of {timeout}s reached, stopping {len(nodes)} nodes")
            for node in nodes:
                node.stop()
        timer = asyncio.get_running_loop().call_later(timeout, _stop_all)

    try:
        results = await asyncio.gather(*(node.start() for node in nodes))
    finally:
        if timer is not None:
            timer.cancel()
        for node in nodes:
            await node.transport.drain()
    return list(results)


async def simulate(
    total_nodes: int,
    max_faults: int,
    initial_values: Sequence[Optional[int]],
    faulty_list: Sequence[bool],
    config: Optional[NodeConfig] = None,
    drop_rate: float = 0.0,
    seed: Optional[int] = None,
    timeout: Optional[float] = None
) -> List[ConsensusNode]:
    """Run a full in-memory network to completion; returns the nodes"""
    nodes = build_local_network(
        total_nodes, max_faults, initial_values, faulty_list,
        config=config, drop_rate=drop_rate, seed=seed
    )
    await run_nodes(nodes, timeout=timeout)
    return nodes
