"""
Unit tests for API routes.
"""

import io
import json

import logging

import pytest

from main_server import create_app
from mysql_manager import MySQLManager

from conftest import FakeAdvisor


class TestAuthAPI:
    """Tests for login and session handling."""

    def test_requires_login(self, client):
        response = client.get('/api/subnets')
        assert response.status_code == 401
        assert response.get_json() == {'error': 'Login required'}

    def test_health_is_public(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_login_and_logout(self, client):
        response = client.post('/api/login', json={'email': 'admin@nexus.com'})
        assert response.status_code == 200
        assert response.get_json()['user'] == {'username': 'admin@nexus.com', 'role': 'admin'}
        assert client.get('/api/me').get_json()['user']['role'] == 'admin'

        client.post('/api/logout')
        assert client.get('/api/me').status_code == 401

    def test_login_requires_email(self, client):
        response = client.post('/api/login', json={})
        assert response.status_code == 400


class TestSubnetsAPI:
    """Tests for subnet endpoints."""

    def test_list_subnets(self, user_client):
        data = user_client.get('/api/subnets').get_json()
        assert [s['name'] for s in data['subnets']] == ['Office', 'Lab']

    def test_create_subnet(self, admin_client, storage):
        response = admin_client.post('/api/subnets', json={
            'id': 'ignored', 'name': 'Servers', 'cidr': '192.168.20.0/30', 'vlan': '30'
        })
        assert response.status_code == 201

        subnet = response.get_json()['subnet']
        assert subnet['id'] == '3'
        assert subnet['gateway'] == '192.168.20.0'
        assert subnet['vlan'] == 30
        assert sorted(subnet['records']) == ['192.168.20.1', '192.168.20.2']
        assert all(r['status'] == 'Available' for r in subnet['records'].values())
        assert '3' in storage.subnets

    def test_create_large_subnet_has_no_records(self, admin_client):
        response = admin_client.post('/api/subnets', json={'name': 'Campus', 'cidr': '10.20.0.0/16'})
        assert response.status_code == 201
        assert response.get_json()['subnet']['records'] == {}

    def test_create_subnet_validation(self, admin_client):
        assert admin_client.post('/api/subnets', json={'name': '', 'cidr': '10.0.0.0/24'}).status_code == 400
        assert admin_client.post('/api/subnets', json={'name': 'X', 'cidr': '10.0.0/24'}).status_code == 400
        assert admin_client.post('/api/subnets', json={'name': 'X', 'cidr': '999.0.0.0/24'}).status_code == 400
        assert admin_client.post('/api/subnets', json={'name': 'X', 'cidr': '10.0.0.0/24', 'vlan': 'abc'}).status_code == 400

    @pytest.mark.parametrize('vlan', ['1e400', '-1e400', '5000', '0', '12.5'])
    def test_create_subnet_rejects_bad_vlan(self, admin_client, storage, vlan):
        body = '{"name": "X", "cidr": "10.0.0.0/24", "vlan": ' + vlan + '}'
        response = admin_client.post('/api/subnets', data=body, content_type='application/json')
        assert response.status_code == 400
        assert 'VLAN ID' in response.get_json()['error']
        assert len(storage.subnets) == 2

    def test_create_subnet_requires_admin(self, user_client):
        response = user_client.post('/api/subnets', json={'name': 'X', 'cidr': '10.0.0.0/24'})
        assert response.status_code == 403

    def test_delete_subnet(self, admin_client, storage):
        assert admin_client.delete('/api/subnets/1').status_code == 200
        assert '1' not in storage.subnets
        assert admin_client.delete('/api/subnets/1').status_code == 404

    def test_delete_requires_admin(self, user_client):
        assert user_client.delete('/api/subnets/1').status_code == 403


class TestAddressListing:
    """Tests for IP listings, which must be in numeric order."""

    def test_ips_in_numeric_order(self, user_client):
        data = user_client.get('/api/subnets/1/ips').get_json()
        ips = [r['ip'] for r in data['ips']]
        assert ips[:3] == ['192.168.10.1', '192.168.10.2', '192.168.10.3']
        assert ips.index('192.168.10.9') < ips.index('192.168.10.10')
        assert data['count'] == 14
        assert data['subnet']['ip_count'] == 14

    def test_search_filter(self, admin_client):
        admin_client.put('/api/subnets/1/ips/192.168.10.5', json={'status': 'Active', 'hostname': 'Printer-2F'})
        data = admin_client.get('/api/subnets/1/ips?q=printer').get_json()
        assert [r['ip'] for r in data['ips']] == ['192.168.10.5']

        data = admin_client.get('/api/subnets/1/ips?q=10.1').get_json()
        assert [r['ip'] for r in data['ips']] == ['192.168.10.1', '192.168.10.10', '192.168.10.11',
                                                   '192.168.10.12', '192.168.10.13', '192.168.10.14']

    def test_grid_labels(self, user_client):
        cells = user_client.get('/api/subnets/2/grid').get_json()['cells']
        assert len(cells) == 254
        assert [c['label'] for c in cells[:3]] == ['1', '2', '3']
        assert cells[-1]['ip'] == '10.0.0.254'

    def test_unknown_subnet(self, user_client):
        assert user_client.get('/api/subnets/99/ips').status_code == 404


class TestUpdateIP:
    """Tests for the IP editor endpoint."""

    def test_admin_update(self, admin_client, storage):
        response = admin_client.put('/api/subnets/1/ips/192.168.10.3', json={
            'status': 'DHCP', 'owner': 'netops', 'description': 'pool'
        })
        assert response.status_code == 200
        record = storage.subnets['1']['records']['192.168.10.3']
        assert record['status'] == 'DHCP'
        assert record['owner'] == 'netops'

    def test_user_reserves_available_ip(self, user_client, storage):
        response = user_client.put('/api/subnets/1/ips/192.168.10.4', json={'status': 'Active', 'hostname': 'laptop'})
        assert response.status_code == 200
        assert response.get_json()['ip']['status'] == 'Reserved'
        assert storage.subnets['1']['records']['192.168.10.4']['hostname'] == 'laptop'

    def test_user_cannot_edit_reserved_ip(self, client, storage):
        client.post('/api/login', json={'email': 'operator@nexus.com'})
        client.put('/api/subnets/1/ips/192.168.10.4', json={})
        response = client.put('/api/subnets/1/ips/192.168.10.4', json={'status': 'Available'})
        assert response.status_code == 403

    def test_invalid_status(self, admin_client):
        response = admin_client.put('/api/subnets/1/ips/192.168.10.3', json={'status': 'Gone'})
        assert response.status_code == 400

    def test_unknown_ip(self, admin_client):
        assert admin_client.put('/api/subnets/1/ips/192.168.10.15', json={}).status_code == 404


class TestStatisticsAPI:
    def test_statistics(self, user_client):
        data = user_client.get('/api/statistics').get_json()
        assert data['total_ips'] == 14 + 254
        assert data['subnet_count'] == 2
        assert data['top_subnets'][0]['name'] == 'Lab'
        assert set(data['totals']) == {'Available', 'Reserved', 'Active', 'DHCP', 'Offline'}


class TestAdvisorAPI:
    def test_chat_uses_context(self, user_client, advisor):
        response = user_client.post('/api/advisor/chat', json={'message': 'How busy is the lab?'})
        data = response.get_json()
        assert data['text'] == 'Use a /24 per floor.'
        assert data['suggestion'] is None

        prompt, context = advisor.questions[0]
        assert prompt == 'How busy is the lab?'
        assert [s['name'] for s in json.loads(context)] == ['Office', 'Lab']

    def test_plan_requests_from_users_are_plain_chat(self, user_client, advisor):
        user_client.post('/api/advisor/chat', json={'message': 'suggest a plan'})
        assert advisor.requirements == []
        assert len(advisor.questions) == 1

    def test_admin_gets_suggestion(self, admin_client, advisor):
        advisor.plan = '{"name": "Guest WiFi", "cidr": "172.16.5.0/24", "description": "Isolated guests"}'
        data = admin_client.post('/api/advisor/chat', json={'message': 'Suggest a guest network'}).get_json()
        assert data['suggestion']['cidr'] == '172.16.5.0/24'
        assert 'Guest WiFi' in data['text']
        assert advisor.questions == []

    def test_admin_falls_back_when_plan_is_empty(self, admin_client, advisor):
        data = admin_client.post('/api/advisor/chat', json={'message': 'plan something'}).get_json()
        assert data['suggestion'] is None
        assert data['text'] == 'Use a /24 per floor.'

    def test_empty_message(self, user_client):
        assert user_client.post('/api/advisor/chat', json={'message': ' '}).status_code == 400

    def test_apply_suggestion(self, admin_client, storage):
        response = admin_client.post('/api/advisor/apply', json={'name': 'Guest WiFi', 'cidr': '172.16.5.0/29'})
        assert response.status_code == 201
        records = storage.subnets['3']['records']
        assert len(records) == 6
        assert all(r['status'] == 'Available' for r in records.values())


class TestImportAPI:
    def test_import_csv(self, admin_client, storage):
        data = {'file': (io.BytesIO(b"name,cidr,vlan\nVoice,10.9.0.0/30,90\n"), 'subnets.csv')}
        response = admin_client.post('/api/import-csv', data=data, content_type='multipart/form-data')
        assert response.status_code == 200
        assert response.get_json()['imported'] == 1
        assert storage.subnets['3']['vlan'] == 90

    def test_import_rejects_other_files(self, admin_client):
        data = {'file': (io.BytesIO(b"x"), 'subnets.txt')}
        response = admin_client.post('/api/import-csv', data=data, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_import_requires_admin(self, user_client):
        data = {'file': (io.BytesIO(b"name,cidr\n"), 'subnets.csv')}
        response = user_client.post('/api/import-csv', data=data, content_type='multipart/form-data')
        assert response.status_code == 403


class TestDemoStorageAPI:
    """Tests against an unconfigured MySQLManager serving demo data."""

    @pytest.fixture
    def demo_client(self):
        app = create_app({'TESTING': True, 'SECRET_KEY': 'test'}, storage=MySQLManager(), advisor=FakeAdvisor())
        client = app.test_client()
        client.post('/api/login', json={'email': 'admin@nexus.com'})
        return client

    def test_reads_are_stable(self, demo_client):
        first = demo_client.get('/api/subnets/1/ips').get_json()['ips']
        second = demo_client.get('/api/subnets/1/ips').get_json()['ips']
        assert first == second

    def test_update_is_visible_on_next_read(self, demo_client):
        response = demo_client.put('/api/subnets/1/ips/192.168.1.5', json={'status': 'Offline', 'hostname': 'printer'})
        assert response.status_code == 200

        ips = demo_client.get('/api/subnets/1/ips', query_string={'q': 'printer'}).get_json()['ips']
        assert [(r['ip'], r['status']) for r in ips] == [('192.168.1.5', 'Offline')]

    def test_user_reservation_is_kept(self, demo_client):
        ips = demo_client.get('/api/subnets/1/ips').get_json()['ips']
        available = next(r['ip'] for r in ips if r['status'] == 'Available')

        demo_client.post('/api/login', json={'email': 'operator@nexus.com'})
        assert demo_client.put(f'/api/subnets/1/ips/{available}', json={'owner': 'ops'}).status_code == 200
        assert demo_client.put(f'/api/subnets/1/ips/{available}', json={'owner': 'ops'}).status_code == 403

    def test_created_subnet_is_listed_and_deletable(self, demo_client):
        created = demo_client.post('/api/subnets', json={'name': 'Lab', 'cidr': '10.9.0.0/29'}).get_json()['subnet']
        assert created['id'] == '3'

        listed = demo_client.get('/api/subnets').get_json()['subnets']
        assert [s['id'] for s in listed] == ['1', '2', '3']

        assert demo_client.delete('/api/subnets/3').status_code == 200
        assert demo_client.get('/api/subnets/3/ips').status_code == 404

    def test_changes_are_logged(self, demo_client, caplog):
        with caplog.at_level(logging.INFO, logger='main_server'):
            demo_client.delete('/api/subnets/2')
        assert 'DELETE subnets (subnet_id=2)' in caplog.text


class TestCors:
    """Tests for the allowed browser origins."""

    @pytest.fixture
    def cors_client(self, storage, advisor):
        app = create_app({'TESTING': True, 'SECRET_KEY': 'test', 'CORS_ORIGINS': ['http://ipam.example.com']},
                         storage=storage, advisor=advisor)
        return app.test_client()

    def test_allowed_origin_is_echoed(self, cors_client):
        response = cors_client.get('/health', headers={'Origin': 'http://ipam.example.com'})
        assert response.headers['Access-Control-Allow-Origin'] == 'http://ipam.example.com'
        assert response.headers['Access-Control-Allow-Credentials'] == 'true'

    def test_other_origins_get_no_cors_headers(self, cors_client):
        response = cors_client.get('/health', headers={'Origin': 'http://evil.example.net'})
        assert 'Access-Control-Allow-Origin' not in response.headers
