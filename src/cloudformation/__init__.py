"""
CloudFormation stack management utilities.
"""

from .diagnostics import StackDiagnostics, failure_hints
from .stack_manager import StackManager

__all__ = ["StackManager", "StackDiagnostics", "failure_hints"]
