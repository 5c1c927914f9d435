import atexit
import logging

from flask import Flask, Response, jsonify, request

from phoning_tracker.config import Settings
from phoning_tracker.cors import parse_allowlist, set_cors
from phoning_tracker.export import EXPORT_FILENAME
from phoning_tracker.reconcile import MATCH_BY_ID, MATCH_MODES, InvalidPatch, RowNotFound
from phoning_tracker.tracker import Tracker, build_tracker
from phoning_tracker.views import Filters

logger = logging.getLogger(__name__)


def create_app(tracker=None, settings=None):
    settings = settings or Settings.from_env()
    if tracker is None:
        # Served through the factory: nobody else will start or close it.
        tracker = build_tracker(settings)
        tracker.start()
        atexit.register(tracker.close)
    allowlist = parse_allowlist(settings.cors_allow_origins)

    app = Flask(__name__)
    app.json.sort_keys = False

    def identity_unavailable():
        return jsonify({'error': 'Remote sync is not configured'}), 503

    @app.after_request
    def add_cors_headers(response):
        return set_cors(response, request.headers.get('Origin'), allowlist)

    @app.route('/api/rows', methods=['GET'])
    def get_rows():
        return jsonify(tracker.view(Filters.from_params(request.args)))

    @app.route('/api/rows/<row_id>', methods=['PATCH'])
    def patch_row(row_id):
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data:
            return jsonify({'error': 'Expected a JSON object of fields to update'}), 400

        try:
            row = tracker.update_row(row_id, data)
        except RowNotFound:
            return jsonify({'error': 'Row not found'}), 404
        except InvalidPatch as e:
            return jsonify({'error': str(e)}), 400
        return jsonify(row.to_dict())

    @app.route('/api/stats', methods=['GET'])
    def get_stats():
        return jsonify(tracker.stats())

    @app.route('/api/statuses', methods=['POST'])
    def add_status():
        data = request.get_json(silent=True) or {}
        try:
            store = tracker.add_status(str(data.get('label') or ''))
        except InvalidPatch as e:
            return jsonify({'error': str(e)}), 400
        return jsonify({'statuses': list(store.statuses)})

    @app.route('/api/import', methods=['POST'])
    def import_rows():
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            text = str(data.get('text') or '')
            match = data.get('match') or MATCH_BY_ID
        else:
            text = request.get_data(as_text=True)
            match = request.args.get('match') or MATCH_BY_ID

        if match not in MATCH_MODES:
            return jsonify({'error': f"Unknown match mode: {match}"}), 400

        result = tracker.import_text(text, match=match)
        return jsonify({
            'imported': len(result.rows),
            'rejected': result.rejected,
            'total': len(tracker.store.rows),
        })

    @app.route('/api/export', methods=['GET'])
    def export():
        return Response(
            tracker.export_csv(),
            mimetype='text/csv',
            headers={'Content-Disposition': f'attachment; filename={EXPORT_FILENAME}'},
        )

    @app.route('/api/reset', methods=['POST'])
    def reset():
        data = request.get_json(silent=True) or {}
        if data.get('confirm') is not True:
            return jsonify({'error': 'Reset requires {"confirm": true}'}), 400
        tracker.reset(confirm=True)
        return jsonify({'success': True, 'total': len(tracker.store.rows)})

    @app.route('/api/auth/magic-link', methods=['POST'])
    def magic_link():
        if tracker.identity is None:
            return identity_unavailable()
        data = request.get_json(silent=True) or {}
        try:
            tracker.identity.send_magic_link(str(data.get('email') or ''))
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        except Exception as e:
            logger.warning("Magic link request failed: %s", e)
            return jsonify({'error': str(e)}), 502
        return jsonify({'success': True})

    @app.route('/api/auth/user', methods=['GET'])
    def current_user():
        if tracker.identity is None:
            return identity_unavailable()
        return jsonify({'user': tracker.identity.current_user()})

    @app.route('/api/auth/sign-out', methods=['POST'])
    def sign_out():
        if tracker.identity is None:
            return identity_unavailable()
        try:
            tracker.identity.sign_out()
        except Exception as e:
            logger.warning("Sign-out failed: %s", e)
            return jsonify({'error': str(e)}), 502
        tracker.user = None
        return jsonify({'success': True})

    return app


def run(settings=None, port=None):
    settings = settings or Settings.from_env()
    tracker: Tracker = build_tracker(settings)
    tracker.start()
    app = create_app(tracker, settings)
    port = port or settings.port
    print(f"\n  Phoning tracker running at http://localhost:{port}\n")
    try:
        app.run(debug=False, port=port)
    finally:
        tracker.close()


if __name__ == '__main__':
    run()
