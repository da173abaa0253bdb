# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS


def split_permission_code(code: str) -> tuple[str, str]:
    """'orders:manage' -> ('orders', 'manage')."""
    resource, sep, action = code.partition(":")
    if not sep or not resource or not action:
        raise ValueError(f"Invalid permission code: {code!r}")
    return resource, action


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [f"{perm[0]}:{perm[1]}" for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()
