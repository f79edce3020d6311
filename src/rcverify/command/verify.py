"""Verify command - fetch, validate and build a release candidate."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field
from pydantic_graph import End

from rcverify.core.errors import VerifyError
from rcverify.core.log import logger
from rcverify.stages.report import show

if TYPE_CHECKING:
    from rcverify.core.config import State


class VerifyCommand(BaseModel):
    """Verify one release candidate.

    Downloads everything under URL (minus documentation trees), runs
    the release's signature validator, extracts the source archive and
    builds it with every installed toolchain.
    """

    url: str = Field(
        description=(
            "Base URL of the release candidate directory "
            "(e.g. https://dist.apache.org/repos/dist/dev/commons/cli/1.11.0-RC1/)"
        )
    )

    async def run_workflow(self, state: State) -> int:
        """Run the verify workflow.

        Args:
            state: State instance

        Returns:
            Exit code: 0 when everything passed, 1 on a fatal error or
            (by default) when any build failed
        """
        from rcverify.workflow.graph import create_workflow
        from rcverify.workflow.nodes import Prepare

        workflow = create_workflow()
        exit_code = 1

        try:
            async with workflow.iter(Prepare(url=self.url), state=state) as run:
                async for node in run:
                    if isinstance(node, End):
                        exit_code = node.data
        except VerifyError as e:
            state.runtime.verify.status = "failed"
            logger.error(f"{type(e).__name__}: {e}")
            show(f"Error: {e}", stream=sys.stderr)
            return e.exit_code
        except Exception as e:
            state.runtime.verify.status = "failed"
            logger.error(f"Unexpected {type(e).__name__}: {e}")
            show(f"Error: {type(e).__name__}: {e}", stream=sys.stderr)
            return 1

        return exit_code
