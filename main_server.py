"""
Nexus IPAM System
IP Address Management JSON API
"""

import json
import logging

from flask import Blueprint, Flask, current_app, jsonify, request, session
from flask_cors import CORS

import config
from auth import apply_ip_update, auth_login, is_admin, require_admin
from create_sample_data import build_subnet, generate_empty_subnet
from gemini_service import GeminiService, build_usage_context, wants_subnet_plan
from import_csv_data import import_subnets
from ip_utils import get_network_address, ip_to_long, is_valid_cidr, last_octet, sort_records
from log_setup import setup_logging
from models import AuthenticationRequired, IPAMError, NotFound, ValidationError, parse_vlan
from mysql_manager import MySQLManager
from subnet_statistics import get_statistics

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)

PUBLIC_ENDPOINTS = {'api.login', 'api.health'}


def get_storage():
    return current_app.extensions['ipam_storage']


def get_advisor():
    return current_app.extensions['ipam_advisor']


def current_user():
    user = session.get('user')
    if not user:
        raise AuthenticationRequired('Login required')
    return user


def find_subnet(subnet_id):
    subnet = get_storage().get_subnet(subnet_id)
    if subnet is None:
        raise NotFound(f'Subnet {subnet_id} not found')
    return subnet


def validate_new_subnet(data):
    """Name, CIDR and optional VLAN from a request body"""
    name = str(data.get('name') or '').strip()
    cidr = str(data.get('cidr') or '').strip()

    if not name:
        raise ValidationError('Subnet name is required')
    if not is_valid_cidr(cidr):
        raise ValidationError('Invalid CIDR format')
    try:
        ip_to_long(get_network_address(cidr))
    except ValueError as e:
        raise ValidationError(str(e))

    return name, cidr, parse_vlan(data.get('vlan'))


def summarize_subnet(subnet):
    return {
        'id': subnet['id'],
        'name': subnet['name'],
        'cidr': subnet['cidr'],
        'gateway': subnet['gateway'],
        'vlan': subnet.get('vlan'),
        'ip_count': len(subnet['records'])
    }


def record_matches(record, query):
    if query in record['ip']:
        return True
    return any(
        query in (record.get(field) or '').lower()
        for field in ('hostname', 'owner', 'description')
    )


@api.before_request
def require_login():
    if request.endpoint not in PUBLIC_ENDPOINTS:
        current_user()


# ================== AUTH ==================

@api.route('/api/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = auth_login(data.get('email'))
    session['user'] = user
    return jsonify({'success': True, 'user': user})


@api.route('/api/logout', methods=['POST'])
def logout():
    session.pop('user', None)
    return jsonify({'success': True})


@api.route('/api/me')
def me():
    return jsonify({'user': current_user()})


@api.route('/health')
def health():
    return jsonify({
        'status': 'healthy',
        'database_configured': get_storage().is_configured,
        'advisor_configured': get_advisor().is_configured
    })


# ================== SUBNETS ==================

@api.route('/api/subnets', methods=['GET'])
def api_get_subnets():
    """All subnets with their IP records"""
    return jsonify({'subnets': get_storage().get_all_subnets()})


@api.route('/api/subnets', methods=['POST'])
def api_add_subnet():
    """Create a subnet with every usable IP Available"""
    require_admin(current_user())
    data = request.get_json(silent=True) or {}
    name, cidr, vlan = validate_new_subnet(data)

    records = generate_empty_subnet(cidr, current_app.config['IPAM_MIN_PREFIX'])
    subnet = get_storage().create_subnet(build_subnet(name, cidr, vlan=vlan, records=records))

    logger.info(f"✅ Subnet {cidr} ({name}) created with {len(records)} IPs")
    return jsonify({'success': True, 'subnet': subnet}), 201


@api.route('/api/subnets/<subnet_id>', methods=['DELETE'])
def api_delete_subnet(subnet_id):
    require_admin(current_user())
    if not get_storage().delete_subnet(subnet_id):
        raise NotFound(f'Subnet {subnet_id} not found')
    return jsonify({'success': True, 'message': 'Subnet deleted successfully'})


@api.route('/api/subnets/<subnet_id>/ips')
def api_subnet_ips(subnet_id):
    """IP records of a subnet in address order, optionally filtered with ?q="""
    subnet = find_subnet(subnet_id)
    query = request.args.get('q', '').strip().lower()

    records = sort_records(subnet['records'])
    if query:
        records = [r for r in records if record_matches(r, query)]

    return jsonify({'subnet': summarize_subnet(subnet), 'ips': records, 'count': len(records)})


@api.route('/api/subnets/<subnet_id>/grid')
def api_subnet_grid(subnet_id):
    """One cell per IP, labelled with its last octet"""
    subnet = find_subnet(subnet_id)
    cells = [
        {
            'ip': record['ip'],
            'label': last_octet(record['ip']),
            'status': record['status'],
            'hostname': record.get('hostname', '')
        }
        for record in sort_records(subnet['records'])
    ]
    return jsonify({'subnet': summarize_subnet(subnet), 'cells': cells})


@api.route('/api/subnets/<subnet_id>/ips/<ip>', methods=['PUT'])
def api_update_ip(subnet_id, ip):
    user = current_user()
    subnet = find_subnet(subnet_id)
    record = subnet['records'].get(ip)
    if record is None:
        raise NotFound(f'IP {ip} not found in subnet {subnet_id}')

    changes = request.get_json(silent=True) or {}
    updated = apply_ip_update(user, record, changes)

    if not get_storage().update_ip(subnet['id'], updated):
        raise NotFound(f'IP {ip} not found in subnet {subnet_id}')

    return jsonify({'success': True, 'ip': updated})


# ================== DASHBOARD ==================

@api.route('/api/statistics')
def api_statistics():
    return jsonify(get_statistics(get_storage().get_all_subnets()))


# ================== ADVISOR ==================

@api.route('/api/advisor/chat', methods=['POST'])
def api_advisor_chat():
    user = current_user()
    data = request.get_json(silent=True) or {}
    message = str(data.get('message') or '').strip()
    if not message:
        raise ValidationError('Message is required')

    advisor = get_advisor()
    context = build_usage_context(get_storage().get_all_subnets())

    if is_admin(user) and wants_subnet_plan(message):
        try:
            suggestion = json.loads(advisor.suggest_subnet_plan(message))
        except ValueError:
            suggestion = None

        if isinstance(suggestion, dict) and suggestion.get('name') and suggestion.get('cidr'):
            text = (
                "Based on your requirements, I suggest the following subnet configuration:\n\n"
                f"**{suggestion['name']}**\nCIDR: `{suggestion['cidr']}`\n\n"
                f"{suggestion.get('description', '')}"
            )
            return jsonify({'role': 'ai', 'text': text, 'suggestion': suggestion})

    text = advisor.ask_network_advisor(message, context)
    return jsonify({'role': 'ai', 'text': text, 'suggestion': None})


@api.route('/api/advisor/apply', methods=['POST'])
def api_advisor_apply():
    """Create the subnet proposed by the advisor"""
    require_admin(current_user())
    data = request.get_json(silent=True) or {}
    name, cidr, vlan = validate_new_subnet(data)

    records = generate_empty_subnet(cidr, current_app.config['IPAM_MIN_PREFIX'])
    subnet = get_storage().create_subnet(build_subnet(name, cidr, vlan=vlan, records=records))
    return jsonify({'success': True, 'subnet': subnet}), 201


# ================== CSV IMPORT ==================

@api.route('/api/import-csv', methods=['POST'])
def api_import_csv():
    require_admin(current_user())
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise ValidationError('No file uploaded')
    if not upload.filename.lower().endswith('.csv'):
        raise ValidationError('Only .csv files are accepted')

    try:
        result = import_subnets(get_storage(), upload.stream, current_app.config['IPAM_MIN_PREFIX'])
    except ValueError as e:
        raise ValidationError(str(e))

    return jsonify({'success': True, **result})


# ================== APPLICATION ==================

def log_change(change):
    """Audit line for every committed subnet or IP change"""
    details = ', '.join(f'{key}={value}' for key, value in change.items() if key not in ('event', 'table'))
    logger.info(f"📝 {change['event']} {change['table']} ({details})")


def register_error_handlers(app):
    @app.errorhandler(IPAMError)
    def handle_ipam_error(error):
        if error.status_code >= 500:
            logger.error(f"❌ {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({'error': 'Uploaded file is too large'}), 413

    @app.errorhandler(500)
    def handle_internal_error(error):
        return jsonify({'error': 'Internal server error'}), 500


def create_app(app_config=None, storage=None, advisor=None):
    """
    Build the Flask application.

    storage and advisor default to a MySQLManager and GeminiService built
    from the environment.
    """
    app = Flask(__name__)
    app.config.update(config.get_app_config())
    if app_config:
        app.config.update(app_config)

    if storage is None:
        storage = MySQLManager.from_config(config.DB_CONFIG)
    if advisor is None:
        advisor = GeminiService(config.GEMINI_API_KEY, model=config.GEMINI_MODEL)

    app.extensions['ipam_storage'] = storage
    app.extensions['ipam_advisor'] = advisor
    storage.on_change(log_change)

    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    app.register_blueprint(api)
    register_error_handlers(app)

    if not storage.is_configured:
        logger.warning("⚠️ MySQL is not configured, serving demo data")
    if not advisor.is_configured:
        logger.warning("⚠️ Gemini API key is not configured, advisor replies will fail")

    return app


if __name__ == '__main__':
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    storage = MySQLManager.from_config(config.DB_CONFIG)
    if storage.is_configured:
        storage.init_tables()

    print("🚀 Starting Nexus IPAM System...")
    print("📊 API: http://localhost:5000/api/subnets")
    create_app(storage=storage).run(debug=False, host='0.0.0.0', port=5000)
