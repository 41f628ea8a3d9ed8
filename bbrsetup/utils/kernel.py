"""
Kernel release helpers.
"""

import re
from typing import Optional, Tuple

MIN_KERNEL_VERSION: Tuple[int, int] = (4, 9)

_RELEASE_RE = re.compile(r'^\s*(\d+)\.(\d+)')


def parse_kernel_version(release: str) -> Optional[Tuple[int, int]]:
    """
    Extract ``(major, minor)`` from a kernel release string.

    Args:
        release: Release string such as ``5.15.0-91-generic``

    Returns:
        Tuple of major and minor numbers, or None if the string has no
        leading ``major.minor``
    """
    match = _RELEASE_RE.match(release or "")
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def meets_minimum(release: str, minimum: Tuple[int, int] = MIN_KERNEL_VERSION) -> bool:
    """
    Check if a kernel release is at least ``minimum``.

    Args:
        release: Kernel release string
        minimum: Required ``(major, minor)``

    Returns:
        True if the release parses and is new enough
    """
    version = parse_kernel_version(release)
    if version is None:
        return False

    major, minor = version
    min_major, min_minor = minimum
    return major > min_major or (major == min_major and minor >= min_minor)
