"""
Import Subnets from CSV into the IPAM Database
Expected columns: name, cidr and optionally vlan
"""

import logging
import sys

import pandas as pd

from create_sample_data import build_subnet, generate_empty_subnet
from ip_utils import DEFAULT_MIN_PREFIX, is_valid_cidr, ip_to_long, get_network_address
from models import StorageError, ValidationError, parse_vlan as parse_vlan_id

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('name', 'cidr')


def parse_vlan(value):
    if pd.isna(value):
        return None
    return parse_vlan_id(value)


def read_subnets_csv(source):
    """
    Read subnet rows from a CSV path or file object.

    Returns (rows, errors); rows are dicts with name, cidr and vlan,
    errors are dicts with the CSV line number and the reason.
    """
    df = pd.read_csv(source, dtype=str)
    df.columns = [str(column).strip().lower() for column in df.columns]

    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    rows = []
    errors = []
    for position, row in df.iterrows():
        line = position + 2  # header is line 1
        name = '' if pd.isna(row['name']) else str(row['name']).strip()
        cidr = '' if pd.isna(row['cidr']) else str(row['cidr']).strip()

        if not name:
            errors.append({'line': line, 'error': 'Name is required'})
            continue
        if not is_valid_cidr(cidr):
            errors.append({'line': line, 'error': f'Invalid CIDR: {cidr}'})
            continue
        try:
            ip_to_long(get_network_address(cidr))
            vlan = parse_vlan(row['vlan']) if 'vlan' in df.columns else None
        except ValidationError as e:
            errors.append({'line': line, 'error': e.message})
            continue
        except ValueError as e:
            errors.append({'line': line, 'error': str(e)})
            continue

        rows.append({'name': name, 'cidr': cidr, 'vlan': vlan})

    return rows, errors


def import_subnets(storage, source, min_prefix=DEFAULT_MIN_PREFIX):
    """Create every valid CSV row as a new, fully Available subnet"""
    rows, errors = read_subnets_csv(source)
    created = []

    for row in rows:
        subnet = build_subnet(
            row['name'],
            row['cidr'],
            vlan=row['vlan'],
            records=generate_empty_subnet(row['cidr'], min_prefix)
        )
        try:
            created.append(storage.create_subnet(subnet))
        except StorageError as e:
            errors.append({'cidr': row['cidr'], 'error': e.message})

    logger.info(f"📥 Imported {len(created)} subnets, skipped {len(errors)}")

    return {
        'imported': len(created),
        'skipped': len(errors),
        'errors': errors,
        'subnets': [
            {'id': s['id'], 'name': s['name'], 'cidr': s['cidr'], 'ip_count': len(s['records'])}
            for s in sorted(created, key=lambda s: ip_to_long(get_network_address(s['cidr'])))
        ]
    }


def main(argv=None):
    from config import DB_CONFIG, IPAM_MIN_PREFIX, LOG_FILE, LOG_LEVEL
    from log_setup import setup_logging
    from mysql_manager import MySQLManager

    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 1:
        print("Usage: python import_csv_data.py <subnets.csv>")
        return 1

    setup_logging(LOG_LEVEL, LOG_FILE)
    storage = MySQLManager.from_config(DB_CONFIG)
    if not storage.is_configured:
        print("❌ Database is not configured, nothing imported")
        return 1

    result = import_subnets(storage, argv[0], IPAM_MIN_PREFIX)
    print(f"✅ Imported {result['imported']} subnets")
    for subnet in result['subnets']:
        print(f"   {subnet['cidr']:<18} {subnet['name']} ({subnet['ip_count']} IPs)")
    for error in result['errors']:
        print(f"⚠️  {error}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
