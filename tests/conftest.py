"""
Pytest configuration and fixtures.
"""

import copy
import os
import random
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from create_sample_data import build_subnet, generate_empty_subnet, generate_mock_subnet
from main_server import create_app


class FakeStorage:
    """In-memory stand-in for MySQLManager"""

    is_configured = True

    def __init__(self, subnets=None):
        self.subnets = {}
        self.next_id = 1
        self.updates = []
        self.listeners = []
        for subnet in subnets or []:
            self.create_subnet(subnet)

    def get_all_subnets(self):
        return [copy.deepcopy(s) for s in self.subnets.values()]

    def get_subnet(self, subnet_id):
        subnet = self.subnets.get(str(subnet_id))
        return copy.deepcopy(subnet) if subnet else None

    def create_subnet(self, subnet):
        created = copy.deepcopy(subnet)
        created['id'] = str(self.next_id)
        self.next_id += 1
        self.subnets[created['id']] = created
        return copy.deepcopy(created)

    def update_ip(self, subnet_id, record):
        subnet = self.subnets.get(str(subnet_id))
        if subnet is None or record['ip'] not in subnet['records']:
            return False
        subnet['records'][record['ip']] = dict(record)
        self.updates.append((str(subnet_id), dict(record)))
        return True

    def delete_subnet(self, subnet_id):
        return self.subnets.pop(str(subnet_id), None) is not None

    def on_change(self, callback):
        self.listeners.append(callback)
        return lambda: self.listeners.remove(callback)


class FakeAdvisor:
    """Records prompts and returns canned replies"""

    is_configured = True

    def __init__(self, answer='Use a /24 per floor.', plan='{}'):
        self.answer = answer
        self.plan = plan
        self.questions = []
        self.requirements = []

    def ask_network_advisor(self, prompt, context_data):
        self.questions.append((prompt, context_data))
        return self.answer

    def suggest_subnet_plan(self, requirement):
        self.requirements.append(requirement)
        return self.plan


@pytest.fixture
def office_subnet():
    """Fully available /28 office subnet."""
    return build_subnet('Office', '192.168.10.0/28', vlan=10,
                        records=generate_empty_subnet('192.168.10.0/28'))


@pytest.fixture
def lab_subnet():
    """Seeded /24 lab subnet with deterministic demo records."""
    return build_subnet('Lab', '10.0.0.0/24', vlan=20,
                        records=generate_mock_subnet('10.0.0.0/24', 'Lab', rng=random.Random(7)))


@pytest.fixture
def storage(office_subnet, lab_subnet):
    return FakeStorage([office_subnet, lab_subnet])


@pytest.fixture
def advisor():
    return FakeAdvisor()


@pytest.fixture
def app(storage, advisor):
    """Create Flask test application."""
    return create_app({'TESTING': True, 'SECRET_KEY': 'test'}, storage=storage, advisor=advisor)


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def admin_client(client):
    client.post('/api/login', json={'email': 'admin@nexus.com'})
    return client


@pytest.fixture
def user_client(client):
    client.post('/api/login', json={'email': 'operator@nexus.com'})
    return client
