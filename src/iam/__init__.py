"""
IAM resource templates for the access stack.
"""

from .access_template import OUTPUT_FIELDS, AccessStackTemplate

__all__ = ["AccessStackTemplate", "OUTPUT_FIELDS"]
