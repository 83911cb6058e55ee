"""
YAML policy loader.

This module provides functions to load policy files into validated
PolicySnapshots.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from policykit.exceptions import ConfigError
from policykit.snapshot import PolicySnapshot

from .schema import PolicyConfigSchema

logger = logging.getLogger(__name__)

# Environment variable naming the policy file used when no path is given
POLICY_FILE_ENV = "POLICYKIT_POLICY_FILE"


def _validate_schema(data: Any, source: str) -> PolicyConfigSchema:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a mapping at the top level, got {type(data).__name__}")
    try:
        return PolicyConfigSchema.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{source}: invalid policy configuration\n{e}") from e


def _read_yaml(path: Path) -> Any:
    with open(path, "r") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"{path}: invalid YAML: {e}") from e


def parse_policy_config(data: Dict[str, Any], source: str = "<dict>") -> PolicySnapshot:
    """
    Build a snapshot from an already-parsed policy document.

    Args:
        data: Policy document (as produced by yaml.safe_load)
        source: Label for error messages

    Returns:
        Validated PolicySnapshot

    Raises:
        ConfigError: If the document is invalid
    """
    return _validate_schema(data, source).to_snapshot()


def load_policy_config(path: Optional[str | Path] = None) -> PolicySnapshot:
    """
    Load a policy snapshot from a YAML file.

    Args:
        path: Path to YAML file (default: $POLICYKIT_POLICY_FILE)

    Returns:
        Validated PolicySnapshot

    Raises:
        FileNotFoundError: If file doesn't exist
        ConfigError: If no path is available, or YAML parsing or validation fails
    """
    if path is None:
        env_path = os.getenv(POLICY_FILE_ENV)
        if not env_path:
            raise ConfigError(f"No policy file given and {POLICY_FILE_ENV} is not set")
        path = env_path

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    schema = _validate_schema(_read_yaml(path), str(path))
    snapshot = schema.to_snapshot()
    logger.info(f"Loaded policy set '{schema.name}' from {path}")
    return snapshot


def load_policy_dir(directory: str | Path, name: Optional[str] = None) -> PolicySnapshot:
    """
    Load all policy files from a directory into one snapshot.

    Loads all .yml and .yaml files from the directory, in file name order.
    Roles, policies and datasets may reference definitions in other files.

    Args:
        directory: Directory path
        name: Name of the merged policy set

    Returns:
        Validated PolicySnapshot

    Raises:
        FileNotFoundError: If directory doesn't exist
        ConfigError: If any file is invalid or names collide across files
    """
    directory = Path(directory)
    if not directory.exists():
        raise FileNotFoundError(f"Policy directory not found: {directory}")

    if not directory.is_dir():
        raise ValueError(f"Path is not a directory: {directory}")

    paths = sorted([*directory.glob("*.yml"), *directory.glob("*.yaml")])
    schemas: List[PolicyConfigSchema] = []
    for path in paths:
        try:
            schemas.append(_validate_schema(_read_yaml(path), str(path)))
            logger.info(f"Loaded policy file: {path.name}")
        except Exception as e:
            logger.error(f"Failed to load {path}: {e}")
            raise

    if not schemas:
        raise ConfigError(f"No policy files found in {directory}")

    merged = PolicyConfigSchema.merge(schemas, name=name or directory.name)
    return merged.to_snapshot()


__all__ = [
    "POLICY_FILE_ENV",
    "load_policy_config",
    "load_policy_dir",
    "parse_policy_config",
]
