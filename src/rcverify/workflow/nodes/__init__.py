"""Workflow nodes, one per pipeline stage."""

from rcverify.workflow.nodes.build import Build
from rcverify.workflow.nodes.extract import Extract
from rcverify.workflow.nodes.fetch import Fetch
from rcverify.workflow.nodes.prepare import Prepare
from rcverify.workflow.nodes.report import Report
from rcverify.workflow.nodes.toolchains import Enumerate
from rcverify.workflow.nodes.validate import Validate

__all__ = [
    "Prepare",
    "Fetch",
    "Validate",
    "Extract",
    "Enumerate",
    "Build",
    "Report",
]
