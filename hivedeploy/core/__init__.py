"""
HiveDeploy Core

Hive manifest loading and the deployment pipeline driver.
"""

from .hive_loader import Hive, HiveLoader, load_hive
from .deployment import Deployment

__all__ = [
    "Hive",
    "HiveLoader",
    "load_hive",
    "Deployment",
]
