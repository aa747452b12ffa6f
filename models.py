"""
Data model for the IPAM system
Subnets and IP records are plain dicts in the same shape the API returns
"""

import math
import time
from enum import Enum


class IPStatus(str, Enum):
    AVAILABLE = 'Available'
    RESERVED = 'Reserved'
    ACTIVE = 'Active'
    DHCP = 'DHCP'
    OFFLINE = 'Offline'


class UserRole(str, Enum):
    ADMIN = 'admin'
    USER = 'user'


# Optional text fields; only present on a record when set
RECORD_TEXT_FIELDS = ('hostname', 'owner', 'description')

# 802.1Q usable VLAN IDs
VLAN_MIN = 1
VLAN_MAX = 4094


def now_millis():
    """Current time as epoch milliseconds"""
    return int(time.time() * 1000)


def make_ip_record(ip, status=IPStatus.AVAILABLE, hostname=None, owner=None,
                   description=None, last_updated=None):
    """Build an IP record dict, leaving out empty optional fields"""
    record = {
        'ip': ip,
        'status': IPStatus(status).value,
        'last_updated': last_updated if last_updated is not None else now_millis()
    }
    for field, value in (('hostname', hostname), ('owner', owner), ('description', description)):
        if value:
            record[field] = value
    return record


def parse_status(value):
    """Return the IPStatus for value or raise ValidationError"""
    try:
        return IPStatus(value)
    except ValueError:
        allowed = ', '.join(s.value for s in IPStatus)
        raise ValidationError(f"Invalid status '{value}', expected one of: {allowed}")


def parse_vlan(value):
    """VLAN ID from a request or CSV value; None when blank, ValidationError when invalid"""
    if value is None or str(value).strip() == '':
        return None
    if isinstance(value, bool):
        raise ValidationError('VLAN ID must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError('VLAN ID must be a number')
    if not math.isfinite(number) or not number.is_integer():
        raise ValidationError('VLAN ID must be a whole number')
    if not VLAN_MIN <= number <= VLAN_MAX:
        raise ValidationError(f'VLAN ID must be between {VLAN_MIN} and {VLAN_MAX}')
    return int(number)


# ================== ERRORS ==================

class IPAMError(Exception):
    """Base application error carrying an HTTP status code"""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(IPAMError):
    status_code = 400


class AuthenticationRequired(IPAMError):
    status_code = 401


class PermissionDenied(IPAMError):
    status_code = 403


class NotFound(IPAMError):
    status_code = 404


class StorageError(IPAMError):
    status_code = 500
