"""
MySQL Database Manager for IPAM System
Stores subnets and their IP records, and maps the relational rows
back to the nested subnet structure used by the API
"""

import copy
import logging

import mysql.connector
from mysql.connector import Error
from mysql.connector.constants import ClientFlag

from create_sample_data import get_mock_subnets
from models import RECORD_TEXT_FIELDS, StorageError, now_millis

logger = logging.getLogger(__name__)

SUBNETS_TABLE = '''
    CREATE TABLE IF NOT EXISTS subnets (
        id INT AUTO_INCREMENT PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        cidr VARCHAR(18) NOT NULL,
        gateway VARCHAR(15),
        vlan INT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        INDEX idx_cidr (cidr)
    ) ENGINE=InnoDB
'''

IP_RECORDS_TABLE = '''
    CREATE TABLE IF NOT EXISTS ip_records (
        id INT AUTO_INCREMENT PRIMARY KEY,
        subnet_id INT NOT NULL,
        ip VARCHAR(15) NOT NULL,
        status ENUM('Available', 'Reserved', 'Active', 'DHCP', 'Offline') DEFAULT 'Available',
        hostname VARCHAR(255),
        owner VARCHAR(100),
        description TEXT,
        last_updated BIGINT,
        FOREIGN KEY (subnet_id) REFERENCES subnets(id) ON DELETE CASCADE,
        UNIQUE KEY unique_subnet_ip (subnet_id, ip),
        INDEX idx_status (status)
    ) ENGINE=InnoDB
'''


def row_to_record(row):
    """Convert an ip_records row to an IP record dict"""
    record = {
        'ip': row['ip'],
        'status': row['status'],
        'last_updated': row.get('last_updated')
    }
    for field in RECORD_TEXT_FIELDS:
        if row.get(field):
            record[field] = row[field]
    return record


def rows_to_subnets(subnet_rows, ip_rows):
    """Merge subnet rows and ip_records rows into nested subnet dicts"""
    subnets = []
    by_id = {}
    for row in subnet_rows:
        subnet = {
            'id': str(row['id']),
            'name': row['name'],
            'cidr': row['cidr'],
            'gateway': row['gateway'],
            'vlan': row.get('vlan'),
            'records': {}
        }
        subnets.append(subnet)
        by_id[subnet['id']] = subnet

    for row in ip_rows:
        parent = by_id.get(str(row['subnet_id']))
        if parent is not None:
            parent['records'][row['ip']] = row_to_record(row)

    return subnets


class MySQLManager:
    """
    Persistence facade for subnets and IP records.

    Constructed explicitly and handed to the application. When the
    connection settings are incomplete, the demo data set is built once
    and reads and writes go to that in-memory copy.
    """

    def __init__(self, host='', user='', password='', database='', port=3306):
        self.host = host
        self.user = user
        self.password = password
        self.database = database
        self.port = port
        self._listeners = []
        self._demo_subnets = None
        self._demo_last_id = None

    @classmethod
    def from_config(cls, db_config):
        return cls(
            host=db_config.get('host', ''),
            user=db_config.get('user', ''),
            password=db_config.get('password', ''),
            database=db_config.get('database', ''),
            port=db_config.get('port', 3306)
        )

    @property
    def is_configured(self):
        return bool(self.host and self.user and self.database)

    def get_connection(self):
        """Open a new database connection"""
        return mysql.connector.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            client_flags=[ClientFlag.FOUND_ROWS]
        )

    def init_tables(self):
        """Create the subnets and ip_records tables if they don't exist"""
        if not self.is_configured:
            logger.warning("⚠️ Database not configured, skipping table creation")
            return False

        connection = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor()
            cursor.execute(SUBNETS_TABLE)
            cursor.execute(IP_RECORDS_TABLE)
            connection.commit()
            cursor.close()
            logger.info("✅ Database tables initialized successfully")
            return True
        except Error as e:
            logger.error(f"❌ Error creating tables: {e}")
            raise StorageError(f"Could not initialize tables: {e}")
        finally:
            if connection is not None:
                connection.close()

    # ================== DEMO DATA ==================

    def _demo_data(self):
        """Demo subnets for this manager, generated on first use"""
        if self._demo_subnets is None:
            self._demo_subnets = get_mock_subnets()
        return self._demo_subnets

    def _find_demo_subnet(self, subnet_id):
        for subnet in self._demo_data():
            if subnet['id'] == str(subnet_id):
                return subnet
        return None

    def _next_demo_id(self):
        if self._demo_last_id is None:
            ids = [int(s['id']) for s in self._demo_data() if str(s['id']).isdigit()]
            self._demo_last_id = max(ids, default=0)
        self._demo_last_id += 1
        return str(self._demo_last_id)

    # ================== CHANGE NOTIFICATION ==================

    def on_change(self, callback):
        """Register a callback for committed changes; returns an unsubscribe function"""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, event, table, **payload):
        change = {'event': event, 'table': table}
        change.update(payload)
        for callback in list(self._listeners):
            try:
                callback(change)
            except Exception:
                logger.exception(f"❌ Change listener failed for {event} on {table}")

    # ================== SUBNETS ==================

    def get_all_subnets(self):
        """All subnets with their records; demo data when the database is unavailable"""
        if not self.is_configured:
            logger.warning("⚠️ Database credentials missing, using demo data")
            return copy.deepcopy(self._demo_data())

        connection = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor(dictionary=True)

            cursor.execute("SELECT * FROM subnets ORDER BY created_at ASC, id ASC")
            subnet_rows = cursor.fetchall()

            cursor.execute("SELECT * FROM ip_records")
            ip_rows = cursor.fetchall()
            cursor.close()

            return rows_to_subnets(subnet_rows, ip_rows)

        except Error as e:
            logger.error(f"❌ Error fetching subnets, using demo data: {e}")
            return copy.deepcopy(self._demo_data())
        finally:
            if connection is not None:
                connection.close()

    def get_subnet(self, subnet_id):
        """Single subnet by id, or None"""
        for subnet in self.get_all_subnets():
            if subnet['id'] == str(subnet_id):
                return subnet
        return None

    def create_subnet(self, subnet):
        """
        Insert a subnet and its records.

        Any id already on the subnet is ignored; the returned copy carries
        the id assigned by the database, or the next demo id when the
        database is not configured.
        """
        if not self.is_configured:
            created = copy.deepcopy(subnet)
            created['id'] = self._next_demo_id()
            self._demo_data().append(created)
            logger.warning(f"⚠️ Database not configured, subnet {created['cidr']} kept in demo data (id={created['id']})")
            self._notify('INSERT', 'subnets', subnet_id=created['id'])
            return copy.deepcopy(created)

        connection = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor()

            cursor.execute(
                "INSERT INTO subnets (name, cidr, gateway, vlan) VALUES (%s, %s, %s, %s)",
                (subnet['name'], subnet['cidr'], subnet['gateway'], subnet.get('vlan'))
            )
            new_id = cursor.lastrowid

            timestamp = now_millis()
            ip_rows = [
                (
                    record['ip'],
                    new_id,
                    record['status'],
                    record.get('hostname'),
                    record.get('owner'),
                    record.get('description'),
                    timestamp
                )
                for record in subnet['records'].values()
            ]
            if ip_rows:
                cursor.executemany('''
                    INSERT INTO ip_records
                    (ip, subnet_id, status, hostname, owner, description, last_updated)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                ''', ip_rows)

            connection.commit()
            cursor.close()

            logger.info(f"✅ Created subnet {subnet['cidr']} with {len(ip_rows)} IPs (id={new_id})")

        except Error as e:
            logger.error(f"❌ Error creating subnet {subnet.get('cidr')}: {e}")
            if connection is not None:
                connection.rollback()
            raise StorageError(f"Could not create subnet: {e}")
        finally:
            if connection is not None:
                connection.close()

        created = dict(subnet)
        created['id'] = str(new_id)
        self._notify('INSERT', 'subnets', subnet_id=created['id'])
        return created

    def update_ip(self, subnet_id, record):
        """Update one IP record inside a subnet; False when no such record exists"""
        if not self.is_configured:
            subnet = self._find_demo_subnet(subnet_id)
            if subnet is None or record['ip'] not in subnet['records']:
                return False
            updated = dict(record)
            updated.setdefault('last_updated', now_millis())
            subnet['records'][record['ip']] = updated
            self._notify('UPDATE', 'ip_records', subnet_id=subnet['id'], ip=record['ip'])
            return True

        connection = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor()
            cursor.execute('''
                UPDATE ip_records SET
                    status = %s, hostname = %s, owner = %s,
                    description = %s, last_updated = %s
                WHERE subnet_id = %s AND ip = %s
            ''', (
                record['status'],
                record.get('hostname'),
                record.get('owner'),
                record.get('description'),
                record.get('last_updated') or now_millis(),
                subnet_id,
                record['ip']
            ))
            updated = cursor.rowcount > 0
            connection.commit()
            cursor.close()

        except Error as e:
            logger.error(f"❌ Error updating IP {record.get('ip')}: {e}")
            raise StorageError(f"Could not update IP: {e}")
        finally:
            if connection is not None:
                connection.close()

        if updated:
            self._notify('UPDATE', 'ip_records', subnet_id=str(subnet_id), ip=record['ip'])
        return updated

    def delete_subnet(self, subnet_id):
        """Delete a subnet; its IP records are removed by ON DELETE CASCADE"""
        if not self.is_configured:
            subnet = self._find_demo_subnet(subnet_id)
            if subnet is None:
                return False
            self._demo_data().remove(subnet)
            self._notify('DELETE', 'subnets', subnet_id=subnet['id'])
            return True

        connection = None
        try:
            connection = self.get_connection()
            cursor = connection.cursor()
            cursor.execute("DELETE FROM subnets WHERE id = %s", (subnet_id,))
            deleted = cursor.rowcount > 0
            connection.commit()
            cursor.close()

        except Error as e:
            logger.error(f"❌ Error deleting subnet {subnet_id}: {e}")
            raise StorageError(f"Could not delete subnet: {e}")
        finally:
            if connection is not None:
                connection.close()

        if deleted:
            self._notify('DELETE', 'subnets', subnet_id=str(subnet_id))
        return deleted


if __name__ == '__main__':
    from config import DB_CONFIG, LOG_FILE, LOG_LEVEL
    from log_setup import setup_logging

    setup_logging(LOG_LEVEL, LOG_FILE)
    manager = MySQLManager.from_config(DB_CONFIG)
    if manager.init_tables():
        print("🎉 Database is ready")
    else:
        print("❌ Set MYSQL_HOST, MYSQL_USER and MYSQL_DATABASE first")
