"""Version information for bbr-setup."""

__version__ = "1.0.0"
__version_info__ = (1, 0, 0)

# Release information
__author__ = "bbr-setup maintainers"
__license__ = "MIT"
__description__ = "Enable TCP BBR congestion control on Linux hosts"
