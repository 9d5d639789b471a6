import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, render_template, request, jsonify

# Structured logging
from core.utils.logging_config import setup_logging, get_logger
logger = setup_logging(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    json_format=os.environ.get('PRODUCTION', 'false').lower() == 'true',
)
app_logger = get_logger('dealership.app')
app_logger.info('Dealership app module loading...')
from flask_compress import Compress
from werkzeug.exceptions import RequestEntityTooLarge
from database import ping_db, init_db
from inventory.config import get_config


app = Flask(__name__)

# Multipart overhead on top of the file itself; the exact file limit is
# enforced by the upload routes.
app.config['MAX_CONTENT_LENGTH'] = get_config().MAX_UPLOAD_BYTES + 1024 * 1024

compress = Compress()
compress.init_app(app)

# ============== Blueprint Registrations ==============

from inventory import inventory_bp
app.register_blueprint(inventory_bp)

app_logger.info(f'Dealership startup complete — {len(app.url_map._rules)} routes registered')

# ============== Schema ==============

if not os.environ.get('TESTING'):
    init_db(seed_demo=get_config().SEED_DEMO)

# ============== Global Error Handlers ==============

@app.errorhandler(404)
def handle_404(e):
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'Not found'}), 404
    return render_template('inventory/not_found.html', sku=None), 404

@app.errorhandler(405)
def handle_405(e):
    return jsonify({'success': False, 'error': 'Method not allowed'}), 405

@app.errorhandler(RequestEntityTooLarge)
def handle_413(e):
    max_mb = get_config().MAX_UPLOAD_BYTES // (1024 * 1024)
    return jsonify({'success': False, 'error': f'File size exceeds maximum allowed size of {max_mb}MB'}), 400

@app.errorhandler(500)
def handle_500(e):
    app_logger.exception('Unhandled 500 error')
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'An internal error occurred'}), 500
    return render_template('inventory/error.html'), 500


# ============== After-Request Hook ==============

@app.after_request
def add_cache_headers(response):
    """Cache static assets; never cache health probes."""
    if request.path.startswith('/static/'):
        response.headers['Cache-Control'] = 'public, max-age=3600'
        return response

    if request.path == '/health':
        response.headers['Cache-Control'] = 'no-cache'

    return response


@app.route('/health')
def health_check():
    """Health check endpoint for orchestrator probes.

    Returns 200 with status 'healthy' when the database answers, 503 otherwise.
    """
    checks = {}
    try:
        checks['database'] = ping_db()
    except Exception as e:
        checks['database'] = False
        app_logger.error(f'Health check - database failed: {e}')
    status = 'healthy' if checks.get('database') else 'unhealthy'
    http_code = 200 if status == 'healthy' else 503
    return jsonify({'status': status, 'checks': checks, 'service': 'dealership'}), http_code


if __name__ == '__main__':
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=debug, host='0.0.0.0', port=port)
