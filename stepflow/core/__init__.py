"""
Core package for stepflow.
Flow parsing, step execution and run orchestration.

Lightweight package init to avoid import cycles; import submodules directly:
  from stepflow.core.flow_loader import load_flow
  from stepflow.core.engine import FlowRunner
"""

__all__: list[str] = []
