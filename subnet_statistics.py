"""
Subnet Utilization Statistics
Status totals and most utilized subnets for the dashboard
"""

from ip_utils import get_network_address, ip_to_long
from models import IPStatus


def status_totals(subnets):
    """Number of IP records per status across all subnets"""
    totals = {status.value: 0 for status in IPStatus}
    for subnet in subnets:
        for record in subnet['records'].values():
            totals[record['status']] = totals.get(record['status'], 0) + 1
    return totals


def subnet_usage(subnet):
    """Percentage of records that are not Available"""
    records = subnet['records']
    if not records:
        return 0.0
    used = sum(1 for r in records.values() if r['status'] != IPStatus.AVAILABLE.value)
    return used / len(records) * 100


def top_utilized_subnets(subnets, limit=5):
    """Subnets by usage, highest first; equal usage keeps network address order"""
    ranked = sorted(
        subnets,
        key=lambda s: (-subnet_usage(s), ip_to_long(get_network_address(s['cidr'])))
    )
    return [
        {
            'id': s['id'],
            'name': s['name'],
            'cidr': s['cidr'],
            'usage': round(subnet_usage(s), 1)
        }
        for s in ranked[:limit]
    ]


def get_statistics(subnets, limit=5):
    totals = status_totals(subnets)
    total_ips = sum(totals.values())
    used_ips = total_ips - totals[IPStatus.AVAILABLE.value]

    return {
        'totals': totals,
        'total_ips': total_ips,
        'used_ips': used_ips,
        'utilization_percent': round(used_ips / total_ips * 100, 2) if total_ips > 0 else 0,
        'subnet_count': len(subnets),
        'top_subnets': top_utilized_subnets(subnets, limit)
    }


def print_summary(stats):
    print("=" * 80)
    print("📊 SUMMARY:")
    print(f"   Subnets:             {stats['subnet_count']:,}")
    print(f"   Total IPs:           {stats['total_ips']:,}")
    print(f"   Used IPs:            {stats['used_ips']:,}")
    print(f"   Overall Utilization: {stats['utilization_percent']:.1f}%")
    for status, count in stats['totals'].items():
        print(f"   {status:<20} {count:,}")
    print("=" * 80)
    print("🔝 TOP UTILIZED SUBNETS:")
    for subnet in stats['top_subnets']:
        usage = subnet['usage']
        marker = "🔴" if usage > 80 else "🟡" if usage > 50 else "🟢"
        print(f"   {marker} {subnet['cidr']:<18} | {subnet['name']:<24} | Util: {usage:>5.1f}%")


if __name__ == '__main__':
    from config import DB_CONFIG, LOG_FILE, LOG_LEVEL
    from log_setup import setup_logging
    from mysql_manager import MySQLManager

    setup_logging(LOG_LEVEL, LOG_FILE)
    print("🚀 Subnet Utilization Report")
    print_summary(get_statistics(MySQLManager.from_config(DB_CONFIG).get_all_subnets()))
