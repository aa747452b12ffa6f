"""
IPv4 address helpers for the IPAM system
Conversion between dotted-quad strings and integers, CIDR range expansion
and numeric ordering of addresses
"""

import re

# Smallest prefix length that is expanded into individual addresses.
# Bounds the number of records a single subnet can create.
DEFAULT_MIN_PREFIX = 24

MAX_IPV4 = 0xFFFFFFFF

CIDR_PATTERN = re.compile(r'^([0-9]{1,3}\.){3}[0-9]{1,3}(/([0-9]|[1-2][0-9]|3[0-2]))?$')


def ip_to_long(ip):
    """Convert a dotted-quad string to an unsigned 32-bit integer"""
    octets = ip.split('.')
    if len(octets) != 4:
        raise ValueError(f"Invalid IPv4 address: {ip!r}")

    value = 0
    for octet in octets:
        if not (octet.isascii() and octet.isdigit()):
            raise ValueError(f"Invalid octet in {ip!r}: {octet!r}")
        number = int(octet)
        if not 0 <= number <= 255:
            raise ValueError(f"Octet out of range in {ip!r}: {octet}")
        value = (value << 8) | number
    return value


def long_to_ip(value):
    """Convert an unsigned 32-bit integer to a dotted-quad string"""
    value &= MAX_IPV4
    return '.'.join(str((value >> shift) & 0xFF) for shift in (24, 16, 8, 0))


def is_valid_cidr(cidr):
    """Syntax check for 'a.b.c.d' with an optional '/0'-'/32' suffix"""
    if not isinstance(cidr, str):
        return False
    return CIDR_PATTERN.fullmatch(cidr) is not None


def get_network_address(cidr):
    """Address part of a CIDR string, used as the subnet gateway"""
    return cidr.split('/')[0]


def prefix_mask(prefix):
    """Netmask with the top `prefix` bits set"""
    return (MAX_IPV4 << (32 - prefix)) & MAX_IPV4


def get_ip_range(cidr, min_prefix=DEFAULT_MIN_PREFIX):
    """
    Usable host addresses of a CIDR block, in ascending order.

    Network and broadcast addresses are excluded, so /31 and /32 give an
    empty list. Blocks without a prefix, or with a prefix shorter than
    min_prefix, are not expanded and also give an empty list.
    """
    ip, _, mask_str = cidr.partition('/')
    if not (mask_str.isascii() and mask_str.isdigit()):
        return []

    prefix = int(mask_str)
    if prefix < min_prefix or prefix > 32:
        return []

    mask = prefix_mask(prefix)
    network = ip_to_long(ip) & mask
    broadcast = network | (~mask & MAX_IPV4)

    return [long_to_ip(i) for i in range(network + 1, broadcast)]


# ================== ORDERING ==================

def compare_ips(a, b):
    """Numeric comparison of two addresses, returns -1, 0 or 1"""
    diff = ip_to_long(a) - ip_to_long(b)
    return (diff > 0) - (diff < 0)


def ip_sort_key(ip):
    return ip_to_long(ip)


def sort_ips(ips):
    return sorted(ips, key=ip_sort_key)


def sort_records(records):
    """IP records sorted by address; accepts a dict keyed by ip or any iterable"""
    if isinstance(records, dict):
        records = records.values()
    return sorted(records, key=lambda record: ip_to_long(record['ip']))


def last_octet(ip):
    """Label shown for an address cell in the subnet grid"""
    return ip.split('.')[3]
