"""Fetch node - mirror the release candidate."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.stages.fetch import ArtifactFetcher
from rcverify.workflow.nodes.validate import Validate


@dataclass
class Fetch(BaseNode[State]):
    """Download every file under the base URL into the staging area."""

    async def run(self, ctx: GraphRunContext[State]) -> Validate:
        verify = ctx.state.runtime.verify
        fetcher = ArtifactFetcher(ctx.state.config.fetch, verify.staging)
        verify.base_url = fetcher.fetch(verify.base_url)
        return Validate()
