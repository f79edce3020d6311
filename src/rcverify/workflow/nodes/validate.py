"""Validate node - run the release's signature validator."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_graph import BaseNode, GraphRunContext

from rcverify.core.config import State
from rcverify.stages.validate import IntegrityValidator
from rcverify.workflow.nodes.extract import Extract


@dataclass
class Validate(BaseNode[State]):
    """Record the validation outcome. Never stops the pipeline by itself."""

    async def run(self, ctx: GraphRunContext[State]) -> Extract:
        config = ctx.state.config
        verify = ctx.state.runtime.verify

        validator = IntegrityValidator(
            config.validation,
            verify.staging,
            required_file=config.fetch.required_file,
        )
        verify.validation = validator.validate()
        return Extract()
