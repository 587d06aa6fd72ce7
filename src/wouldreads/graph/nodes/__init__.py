"""
LangGraph nodes for the feed aggregation pipeline.

Each node is an async function that:
- Takes AggregatorState as input
- Returns a dict with partial state updates
- Handles per-source and per-item errors locally (logs but doesn't crash)

Nodes:
- collector: Fetch and parse every source concurrently
- deduplicate: Drop the same story reported twice
- rank: Newest first, bounded length
- read_state: Apply persisted read/unread status
- persist: Save articles and fetch time
"""

from wouldreads.graph.nodes.collector import collect_sources, create_collector_node
from wouldreads.graph.nodes.deduplicate import deduplicate
from wouldreads.graph.nodes.persist import create_persist_node
from wouldreads.graph.nodes.rank import create_rank_node
from wouldreads.graph.nodes.read_state import merge_read_state_node

__all__ = [
    "collect_sources",
    "create_collector_node",
    "deduplicate",
    "create_rank_node",
    "merge_read_state_node",
    "create_persist_node",
]
