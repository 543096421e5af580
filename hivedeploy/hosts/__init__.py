"""
HiveDeploy Hosts

Deployment targets. Only the local machine is implemented here; remote
targets implement the same Host interface.
"""

from .base import CopyDirection, CopyOptions, Host
from .local import LocalHost

__all__ = [
    "CopyDirection",
    "CopyOptions",
    "Host",
    "LocalHost",
]
