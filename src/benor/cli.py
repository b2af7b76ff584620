#!/usr/bin/env python3
"""
Ben-Or network runner

Usage:
    benor simulate -n 4 -f 1 --values 1,1,1,1 --faulty 3
    benor serve -n 3 -f 0 --values 0,1,1
"""

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from typing import List, Optional, Sequence

from .config import NodeConfig, get_settings
from .consensus.node import ConsensusNode
from .consensus.quorum import QuorumCalculator
from .network.launcher import launch_network, simulate, start_consensus, stop_network

logger = logging.getLogger("benor.cli")


def parse_values(raw: str, total_nodes: int) -> List[Optional[int]]:
    """Parse '0,1,?' into initial opinions; '?' means undefined"""
    values: List[Optional[int]] = []
    for item in raw.split(","):
        item = item.strip()
        if item in ("?", ""):
            values.append(None)
        elif item in ("0", "1"):
            values.append(int(item))
        else:
            raise argparse.ArgumentTypeError(f"Invalid opinion {item!r}, expected 0, 1 or ?")
    if len(values) != total_nodes:
        raise argparse.ArgumentTypeError(f"Expected {total_nodes} values, got {len(values)}")
    return values


def parse_faulty(raw: str, total_nodes: int) -> List[bool]:
    """Parse '2,3' (faulty node ids) into a per-node flag list"""
    faulty = [False] * total_nodes
    if not raw:
        return faulty
    for item in raw.split(","):
        try:
            node_id = int(item)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Invalid faulty node id {item!r}")
        if not 0 <= node_id < total_nodes:
            raise argparse.ArgumentTypeError(f"Faulty node id {node_id} outside [0, {total_nodes})")
        faulty[node_id] = True
    return faulty


def build_config(args) -> NodeConfig:
    """Check the network shape and build the per-node config from the arguments"""
    try:
        QuorumCalculator(total_nodes=args.nodes, max_faults=args.faults)
        if not 0.0 <= args.drop_rate < 1.0:
            raise ValueError(f"drop rate must be within [0, 1), got {args.drop_rate}")
        if args.mode == "simulate":
            return NodeConfig(round_delay=args.round_delay, readiness_poll_interval=0.01)
        settings = get_settings()
        return NodeConfig(
            round_delay=args.round_delay,
            readiness_poll_interval=settings.READINESS_POLL_INTERVAL,
            retention_rounds=settings.MESSAGE_RETENTION_ROUNDS,
        )
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def correct_nodes_agree(nodes: Sequence[ConsensusNode]) -> bool:
    """True if every correct node that decided holds the same value"""
    decided_values = {n.x for n in nodes if not n.is_faulty and n.decided}
    return len(decided_values) <= 1


def report(nodes: Sequence[ConsensusNode]) -> None:
    for node in nodes:
        state = node.get_state().model_dump()
        print(f"node {node.node_id} [{node.status().value}] {json.dumps(state)}")


async def _run_simulation(args, config, values, faulty) -> List[ConsensusNode]:
    return await simulate(
        args.nodes, args.faults, values, faulty,
        config=config,
        drop_rate=args.drop_rate,
        seed=args.seed,
        timeout=args.timeout
    )


async def _run_served(args, config, values, faulty) -> List[ConsensusNode]:
    settings = get_settings()
    handle = await launch_network(args.nodes, args.faults, values, faulty, settings=settings, config=config)
    try:
        if args.timeout is not None:
            answers = await asyncio.wait_for(start_consensus(handle), timeout=args.timeout)
        else:
            answers = await start_consensus(handle)
        for node_id, answer in sorted(answers.items()):
            logger.info(f"Node {node_id} /start answered: {answer}")
    except asyncio.TimeoutError:
        logger.warning(f"Consensus did not finish within {args.timeout}s")
    finally:
        await stop_network(handle)
    return handle.nodes


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run a Ben-Or randomized binary consensus network"
    )
    parser.add_argument(
        "mode",
        choices=["simulate", "serve"],
        help="simulate: in-memory network; serve: one HTTP server per node"
    )
    parser.add_argument("--nodes", "-n", type=int, required=True, help="Total number of nodes (N)")
    parser.add_argument("--faults", "-f", type=int, default=0, help="Fault bound (F)")
    parser.add_argument(
        "--values",
        type=str,
        required=True,
        help="Comma-separated initial opinions, 0, 1 or ? per node"
    )
    parser.add_argument(
        "--faulty",
        type=str,
        default="",
        help="Comma-separated ids of faulty nodes"
    )
    parser.add_argument(
        "--round-delay",
        type=float,
        default=get_settings().ROUND_DELAY,
        help="Propagation window per round, in seconds"
    )
    parser.add_argument("--drop-rate", type=float, default=0.0, help="Simulated message loss (simulate only)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (simulate only)")
    parser.add_argument("--timeout", type=float, default=None, help="Stop all nodes after this many seconds")

    args = parser.parse_args(argv)
    logging.config.dictConfig(get_settings().get_log_config())

    try:
        config = build_config(args)
        values = parse_values(args.values, args.nodes)
        faulty = parse_faulty(args.faulty, args.nodes)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    runner = _run_simulation if args.mode == "simulate" else _run_served
    nodes = asyncio.run(runner(args, config, values, faulty))

    report(nodes)
    if not correct_nodes_agree(nodes):
        logger.error("Correct nodes decided different values")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
