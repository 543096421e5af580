"""
HiveDeploy Constants

Centralized constants for magic values, defaults, and configuration.
"""

import os
from pathlib import Path

# Hive manifest
DEFAULT_CONFIG_PATH = "hive.yml"
CONFIG_PATH_ENV = "HIVEDEPLOY_CONFIG"

# Log Configuration
LOG_DIR_ENV = "HIVEDEPLOY_LOG_DIR"
DEFAULT_LOG_DIR = "~/.hivedeploy/logs"
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"

# Nix store / profiles
STORE_DIR_ENV = "NIX_STORE_DIR"
DEFAULT_STORE_DIR = "/nix/store"
SYSTEM_PROFILE = "/nix/var/nix/profiles/system"
SWITCH_TO_CONFIGURATION = "bin/switch-to-configuration"

# Leaf commands
NIX_STORE_BIN = "nix-store"
NIX_ENV_BIN = "nix-env"
CHMOD_BIN = "chmod"
CHOWN_BIN = "chown"

# Platform detection
OS_RELEASE_PATH = Path("/etc/os-release")
SUPPORTED_OS_MARKER = "ID=nixos"

# Privilege escalation
ESCALATION_COMMAND = "sudo"
RELAUNCH_MARKER_FLAG = "--we-are-launched-by-sudo"

# Key defaults (match the NixOS deployment.keys option defaults)
DEFAULT_KEY_DEST_DIR = "/run/keys"
DEFAULT_KEY_USER = "root"
DEFAULT_KEY_GROUP = "root"
DEFAULT_KEY_PERMISSIONS = "0600"

# Process handling
READ_CHUNK_SIZE = 65536
TERMINATE_GRACE_SECONDS = 5.0

# Exit codes
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
EXIT_PRIVILEGE = 3
EXIT_PLATFORM = 5
EXIT_INTERRUPTED = 130


def get_store_dir() -> str:
    """Store directory, honouring NIX_STORE_DIR."""
    return os.environ.get(STORE_DIR_ENV, DEFAULT_STORE_DIR).rstrip("/") or "/"


def get_log_dir() -> Path:
    """Root directory for run log files."""
    return Path(os.environ.get(LOG_DIR_ENV, DEFAULT_LOG_DIR)).expanduser()


def get_config_path() -> str:
    """Default hive manifest path, honouring HIVEDEPLOY_CONFIG."""
    return os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
