"""
IP record generation for new subnets
generate_empty_subnet is used for real subnet creation.
generate_mock_subnet and get_mock_subnets produce random demo data only.
"""

import random

from ip_utils import DEFAULT_MIN_PREFIX, get_ip_range, get_network_address
from models import IPStatus, make_ip_record, now_millis

# Demo mode status thresholds on a uniform draw in [0, 1):
# 65% Available, 5% DHCP, 10% Reserved, 20% Active
MOCK_STATUS_THRESHOLDS = (
    (0.8, IPStatus.ACTIVE),
    (0.7, IPStatus.RESERVED),
    (0.65, IPStatus.DHCP),
)

MOCK_SUBNETS = [
    {'id': '1', 'name': 'HQ - Floor 1', 'cidr': '192.168.1.0/24', 'vlan': 10},
    {'id': '2', 'name': 'Data Center A', 'cidr': '10.0.50.0/24', 'vlan': 50},
]


def build_subnet(name, cidr, vlan=None, records=None):
    """Subnet dict for a new subnet; the id is assigned by the database"""
    return {
        'id': None,
        'name': name,
        'cidr': cidr,
        'gateway': get_network_address(cidr),
        'vlan': vlan,
        'records': records if records is not None else {}
    }


def generate_empty_subnet(cidr, min_prefix=DEFAULT_MIN_PREFIX):
    """Every usable address of the block as an Available record"""
    timestamp = now_millis()
    return {
        ip: make_ip_record(ip, IPStatus.AVAILABLE, last_updated=timestamp)
        for ip in get_ip_range(cidr, min_prefix)
    }


def pick_mock_status(draw):
    for threshold, status in MOCK_STATUS_THRESHOLDS:
        if draw > threshold:
            return status
    return IPStatus.AVAILABLE


def generate_mock_subnet(cidr, name, rng=None, min_prefix=DEFAULT_MIN_PREFIX):
    """
    Randomly populated records for demo data.

    Not reproducible unless a seeded rng (random.Random) is passed in.
    Active addresses get a hostname host-<index>.local, where index is the
    position of the address in the subnet starting at 0.
    """
    rng = rng or random
    timestamp = now_millis()
    records = {}

    for index, ip in enumerate(get_ip_range(cidr, min_prefix)):
        status = pick_mock_status(rng.random())
        hostname = f"host-{index}.local" if status == IPStatus.ACTIVE else None
        records[ip] = make_ip_record(ip, status, hostname=hostname, last_updated=timestamp)

    return records


def get_mock_subnets(rng=None):
    """Static demo subnets used when no database is available"""
    subnets = []
    for sample in MOCK_SUBNETS:
        subnet = build_subnet(
            sample['name'],
            sample['cidr'],
            vlan=sample['vlan'],
            records=generate_mock_subnet(sample['cidr'], sample['name'], rng=rng)
        )
        subnet['id'] = sample['id']
        subnets.append(subnet)
    return subnets


if __name__ == '__main__':
    for subnet in get_mock_subnets():
        counts = {}
        for record in subnet['records'].values():
            counts[record['status']] = counts.get(record['status'], 0) + 1
        print(f"📊 {subnet['name']} ({subnet['cidr']}): {len(subnet['records'])} IPs")
        for status, count in sorted(counts.items()):
            print(f"   {status}: {count}")
