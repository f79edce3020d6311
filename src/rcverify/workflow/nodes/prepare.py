"""Prepare node - validate the URL and wipe the staging area."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.core.log import logger
from rcverify.stages.fetch import normalize_base_url
from rcverify.stages.report import VersionLog
from rcverify.stages.staging import StagingArea
from rcverify.workflow.nodes.fetch import Fetch


@dataclass
class Prepare(BaseNode[State]):
    """Start a fresh run: nothing from a previous run survives."""

    url: str

    async def run(self, ctx: GraphRunContext[State]) -> Fetch:
        verify = ctx.state.runtime.verify

        # Reject a bad URL before destroying anything
        verify.base_url = normalize_base_url(self.url)
        verify.status = "running"

        staging = StagingArea.from_config(ctx.state.config)
        staging.prepare()
        VersionLog(staging.version_log).reset()
        verify.staging = staging

        logger.debug("Staging area ready", root=str(staging.root))
        return Fetch()
