from typing import Any, Dict

ROLE_HIERARCHY = {
    "admin": 1,
    "sales_manager": 2,
    "sales_team_leader": 3,
    "sales_agent": 4,
    "user": 5,
}

BASE_PERMISSIONS = {
    "canManageUsers": False,
    "canManageProperties": False,
    "canApproveProperties": False,
    "canManageLaunches": False,
    "canManageDevelopers": False,
    "canManageInquiries": False,
    "canManageLeads": False,
    "canManageJobs": False,
    "canAccessDashboard": False,
    "canBulkUpload": False,
}

ROLE_PERMISSION_OVERRIDES = {
    "admin": {key: True for key in BASE_PERMISSIONS},
    "sales_manager": {
        "canManageProperties": True,
        "canApproveProperties": True,
        "canManageLaunches": True,
        "canManageDevelopers": True,
        "canManageInquiries": True,
        "canManageLeads": True,
        "canManageJobs": True,
        "canAccessDashboard": True,
    },
    "sales_team_leader": {
        "canManageProperties": True,
        "canApproveProperties": True,
        "canManageLeads": True,
        "canAccessDashboard": True,
    },
    "sales_agent": {
        "canManageProperties": True,
        "canAccessDashboard": True,
    },
    "user": {},
}


def get_hierarchy_for_role(role: str = "user") -> int:
    return ROLE_HIERARCHY.get((role or "user").lower(), ROLE_HIERARCHY["user"])


def build_permissions_for_role(role: str = "user") -> Dict[str, bool]:
    return {**BASE_PERMISSIONS, **ROLE_PERMISSION_OVERRIDES.get((role or "user").lower(), {})}


def can_auto_approve(role: str, hierarchy: int, permissions: Dict[str, Any]) -> bool:
    """
    Admins (or hierarchy 1) always auto-approve; managers and team leaders
    (hierarchy <= 3) only with the canApproveProperties flag.
    """
    if role == "admin" or hierarchy == 1:
        return True
    if hierarchy <= 3:
        return (permissions or {}).get("canApproveProperties") is True
    return False
