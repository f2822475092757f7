from flask import Flask, jsonify, request

from config import Config
from logging_config import logger
from db import is_postgres
from feature_routes import features_bp, init_all_feature_tables

app = Flask(__name__)
app.secret_key = Config.FLASK_SECRET_KEY
# Backups are the largest uploads the API accepts
app.config['MAX_CONTENT_LENGTH'] = Config.MAX_BACKUP_MB * 1024 * 1024

app.register_blueprint(features_bp)

init_all_feature_tables()


@app.errorhandler(404)
def not_found(e):
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Not found'}), 404
    return e


@app.errorhandler(405)
def method_not_allowed(e):
    if request.path.startswith('/api/'):
        return jsonify({'error': 'Method not allowed'}), 405
    return e


@app.errorhandler(413)
def too_large(e):
    return jsonify({'error': f'Upload exceeds the {Config.MAX_BACKUP_MB} MB limit'}), 413


@app.route('/health', methods=['GET'])
def health():
    """Health check"""
    return jsonify({
        'status': 'healthy',
        'version': Config.APP_VERSION,
        'database': 'postgresql' if is_postgres() else 'sqlite',
    })


logger.info(f"MowerManager {Config.APP_VERSION} ready")


if __name__ == '__main__':
    app.run(debug=Config.DEBUG, port=Config.PORT)
