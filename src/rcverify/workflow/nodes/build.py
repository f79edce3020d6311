"""Build node - build once per toolchain."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.stages.build import BuildRunner
from rcverify.workflow.nodes.report import Report


@dataclass
class Build(BaseNode[State]):
    """Run every environment's build; failures are recorded, not raised."""

    async def run(self, ctx: GraphRunContext[State]) -> Report:
        config = ctx.state.config
        verify = ctx.state.runtime.verify

        runner = BuildRunner(
            verify.project_root,
            verify.staging,
            config.build,
            config.toolchain,
        )
        verify.results = runner.run_all(verify.environments)
        return Report()
