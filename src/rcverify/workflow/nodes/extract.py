"""Extract node - unpack the source archive."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.stages.extract import SourceExtractor
from rcverify.stages.report import show
from rcverify.workflow.nodes.toolchains import Enumerate


@dataclass
class Extract(BaseNode[State]):
    """Find the single source archive and extract it."""

    async def run(self, ctx: GraphRunContext[State]) -> Enumerate:
        verify = ctx.state.runtime.verify

        show("Extracting and building source...", banner=True)
        extractor = SourceExtractor(
            verify.staging.source_dir, ctx.state.config.source.pattern
        )
        verify.project_root = extractor.extract()
        return Enumerate()
