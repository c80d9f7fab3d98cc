"""
Palantir - host telemetry agent exposing a pull-based metrics snapshot.
"""

from .const import APP_VERSION

__version__ = APP_VERSION
__all__ = ["__version__"]
