"""
Utility functions.
"""

from bbrsetup.utils.kernel import MIN_KERNEL_VERSION, meets_minimum, parse_kernel_version

__all__ = [
    "MIN_KERNEL_VERSION",
    "meets_minimum",
    "parse_kernel_version",
]
