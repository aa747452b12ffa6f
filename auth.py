"""
Login and role rules for the IPAM system
"""

import logging

from models import (
    IPStatus,
    PermissionDenied,
    RECORD_TEXT_FIELDS,
    UserRole,
    ValidationError,
    now_millis,
    parse_status,
)

logger = logging.getLogger(__name__)


def derive_role(email):
    """Accounts with 'admin' in the email get the admin role"""
    return UserRole.ADMIN if 'admin' in email.lower() else UserRole.USER


def auth_login(email):
    """Local login: the user is derived from the email alone"""
    email = (email or '').strip()
    if not email:
        raise ValidationError('Email is required')

    user = {'username': email, 'role': derive_role(email).value}
    logger.info(f"🔑 Login as {email} ({user['role']})")
    return user


def is_admin(user):
    return bool(user) and user.get('role') == UserRole.ADMIN.value


def require_admin(user):
    if not is_admin(user):
        raise PermissionDenied('Administrator role required')


def can_edit_ip(user, record):
    """Admins edit any record, users only Available ones"""
    if is_admin(user):
        return True
    return record['status'] == IPStatus.AVAILABLE.value


def apply_ip_update(user, record, changes):
    """
    Return the updated copy of record after applying changes for user.

    Users can only claim an Available address, and the result is always
    Reserved whatever status they sent. Empty text values clear the field.
    """
    if not can_edit_ip(user, record):
        raise PermissionDenied(f"IP {record['ip']} is {record['status']} and can only be changed by an administrator")

    updated = dict(record)

    if is_admin(user):
        if 'status' in changes:
            updated['status'] = parse_status(changes['status']).value
    else:
        updated['status'] = IPStatus.RESERVED.value

    for field in RECORD_TEXT_FIELDS:
        if field not in changes:
            continue
        value = str(changes[field] or '').strip()
        if value:
            updated[field] = value
        else:
            updated.pop(field, None)

    updated['last_updated'] = now_millis()
    return updated
