"""Enumerate node - discover installed toolchains."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.stages.report import show
from rcverify.stages.toolchain import EnvironmentEnumerator
from rcverify.workflow.nodes.build import Build


@dataclass
class Enumerate(BaseNode[State]):
    """List toolchain alternatives, falling back to the default one."""

    async def run(self, ctx: GraphRunContext[State]) -> Build:
        show("Finding installed toolchains...", banner=True)
        enumerator = EnvironmentEnumerator(ctx.state.config.toolchain)
        ctx.state.runtime.verify.environments = enumerator.enumerate()
        return Build()
