"""gentrail: generation trail orchestrator.

Runs iterative measure/stitch cycles of an AI coding agent on isolated git
branches and worktrees, driven by a requirement traceability graph.
"""

__version__ = "0.1.0"
