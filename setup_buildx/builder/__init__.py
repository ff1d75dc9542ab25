"""Builder orchestration module.

This module handles:
- Resolving step inputs
- Composing buildx create/append/inspect/rm arguments
- Running the main step and publishing outputs
- Cleaning up in the post step
"""

from setup_buildx.builder.schema import BuilderInfo, BuilderInputs, BuilderNode, NodeSpec

__all__ = ["BuilderInfo", "BuilderInputs", "BuilderNode", "NodeSpec"]
