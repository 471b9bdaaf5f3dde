"""
TimeMint Node
Main node orchestrator and components.
"""

from timemint.node.config import NodeConfig
from timemint.node.node import Node

__all__ = [
    "NodeConfig",
    "Node",
]
