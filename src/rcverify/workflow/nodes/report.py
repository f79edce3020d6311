"""Report node - summarize and pick the exit code."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from rcverify.core.config import State
from rcverify.core.result import RunSummary
from rcverify.stages.report import ResultAggregator, VersionLog


@dataclass
class Report(BaseNode[State, None, int]):
    """Print tested configurations and failures."""

    async def run(self, ctx: GraphRunContext[State]) -> End[int]:
        config = ctx.state.config
        verify = ctx.state.runtime.verify

        aggregator = ResultAggregator(
            VersionLog(verify.staging.version_log),
            fail_on_build_failure=config.report.fail_on_build_failure,
        )
        exit_code = aggregator.report(
            RunSummary(validation=verify.validation, builds=verify.results)
        )

        verify.status = "complete"
        return End(exit_code)
