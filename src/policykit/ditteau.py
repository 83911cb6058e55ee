"""
Ditteau Data policy set.

The policy file ships with the package; `load_ditteau_policies()` loads it
into a validated snapshot:

    snapshot = load_ditteau_policies()
    decision = snapshot.evaluator().evaluate("IR_ANALYST_ROLE", "DIM_STUDENT", row)
"""

from __future__ import annotations

from pathlib import Path

from policykit.snapshot import PolicySnapshot
from policykit.yaml_config.loader import load_policy_config


DITTEAU_POLICY_FILE = Path(__file__).parent / "data" / "ditteau_data.yml"

# Role groups shared by most Ditteau policies
ADMIN_ROLES = frozenset({"GOVERNANCE_ADMIN_ROLE", "DITTEAU_DATA_ADMIN"})
ENGINEER_ROLES = frozenset({"DATA_ENGINEER_ROLE", "DBT_CLOUD_PROD_ROLE", "DBT_CLOUD_DEV_ROLE"})
ANALYST_ROLES = frozenset({
    "ENROLLMENT_ANALYST_ROLE",
    "REGISTRAR_ANALYST_ROLE",
    "IR_ANALYST_ROLE",
    "FINANCIAL_AID_ANALYST_ROLE",
    "DATA_ANALYST_ROLE",
})


def load_ditteau_policies() -> PolicySnapshot:
    """Load the bundled Ditteau Data policy set."""
    return load_policy_config(DITTEAU_POLICY_FILE)


__all__ = [
    "ADMIN_ROLES",
    "ANALYST_ROLES",
    "DITTEAU_POLICY_FILE",
    "ENGINEER_ROLES",
    "load_ditteau_policies",
]
