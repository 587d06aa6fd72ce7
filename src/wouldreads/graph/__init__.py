"""
LangGraph pipeline for the feed aggregator.

This package contains:
- state.py: State schemas (AggregatorState, Article, CollectionError)
- nodes/: Individual pipeline nodes
- orchestrator.py: Graph wiring and execution

Usage:
    from wouldreads.graph import run_aggregator

    result = await run_aggregator()
"""

from wouldreads.graph.orchestrator import create_graph, get_graph, run_aggregator, run_pipeline
from wouldreads.graph.state import (
    AggregationResult,
    AggregatorState,
    Article,
    CollectionError,
)

__all__ = [
    # Orchestration
    "create_graph",
    "get_graph",
    "run_aggregator",
    "run_pipeline",
    # State types
    "AggregationResult",
    "AggregatorState",
    "Article",
    "CollectionError",
]
