"""HiveDeploy - apply NixOS fleet configurations to hosts"""

__version__ = "0.1.0"
