"""Graph workflow definition."""

from pydantic_graph import Graph

from rcverify.core.config import State
from rcverify.core.log import logger


def create_workflow():
    """Create the verify workflow graph.

    Prepare → Fetch → Validate → Extract → Enumerate → Build → Report

    Returns:
        Graph workflow with State as state_type
    """
    logger.debug("Building workflow graph")

    from rcverify.workflow.nodes import (
        Build,
        Enumerate,
        Extract,
        Fetch,
        Prepare,
        Report,
        Validate,
    )

    return Graph(
        nodes=(
            Prepare,
            Fetch,
            Validate,
            Extract,
            Enumerate,
            Build,
            Report,
        ),
        state_type=State,
    )
