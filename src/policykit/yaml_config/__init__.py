"""
YAML-based policy configuration.

Policy files declare roles, the tag taxonomy, masking and row access
policies, dataset bindings and coverage audit settings in one document:

    from policykit.yaml_config import load_policy_config

    snapshot = load_policy_config("policies/ditteau.yml")
    evaluator = snapshot.evaluator()
"""

from .loader import (
    POLICY_FILE_ENV,
    load_policy_config,
    load_policy_dir,
    parse_policy_config,
)
from .schema import (
    ColumnSpec,
    DatasetSpec,
    PolicyConfigSchema,
    RowFilterSpec,
)

__all__ = [
    # Loader
    "POLICY_FILE_ENV",
    "load_policy_config",
    "load_policy_dir",
    "parse_policy_config",
    # Schema
    "ColumnSpec",
    "DatasetSpec",
    "PolicyConfigSchema",
    "RowFilterSpec",
]
