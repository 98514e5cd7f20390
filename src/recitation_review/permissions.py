"""Role to capability mapping used by the review workflow."""

ROLE_PERMISSIONS = {
    "super_admin": ["*"],
    "admin": [
        "tickets.view", "tickets.approve", "tickets.reject",
        "mushaf.view", "mushaf.edit", "assignments.create",
    ],
    "teacher": [
        "tickets.view", "tickets.create", "tickets.submit",
        "mushaf.view", "mushaf.edit", "assignments.create",
    ],
    "student": ["mushaf.view"],
}


def has_permission(role: str, permission: str) -> bool:
    if role == "super_admin":
        return True
    permissions = ROLE_PERMISSIONS.get(role, [])
    return "*" in permissions or permission in permissions
