# src/benor/network/__init__.py
"""
Network Module - readiness signalling between nodes

Launch helpers live in benor.network.launcher.
"""

from .readiness import ReadinessBarrier, wait_until_ready

__all__ = ["ReadinessBarrier", "wait_until_ready"]
