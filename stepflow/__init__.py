"""
stepflow: declarative browser test flows.

Consumers should import submodules directly, e.g.:
  from stepflow.core.flow_loader import load_flow, Flow
  from stepflow.core.actions import execute_step
  from stepflow.core.engine import FlowRunner, RunOptions
"""

__version__ = "0.1.0"

__all__: list[str] = ["__version__"]
