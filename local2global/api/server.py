from __future__ import annotations
from flask import Flask, request, jsonify
from local2global.api.orchestrator import MigrationService, get_store, status_of
from local2global.config.env import ServerConfig, get_server_config

import dataclasses
import time
from collections import deque, defaultdict

app = Flask(__name__)

# app.config keys that override the L2G_* environment (tests set these)
_OVERRIDES = {
    'API_KEY': 'api_key',
    'RATE_LIMIT_N': 'rate_limit_n',
    'RATE_LIMIT_WINDOW_SEC': 'rate_limit_window_sec',
}


def _settings() -> ServerConfig:
    cfg = get_server_config()
    changes = {field: app.config[key] for key, field in _OVERRIDES.items() if key in app.config}
    return dataclasses.replace(cfg, **changes) if changes else cfg


def get_service() -> MigrationService:
    # tests inject their own service bound to a seeded store
    service = app.config.get('L2G_SERVICE')
    if service is None:
        service = MigrationService(get_store())
        app.config['L2G_SERVICE'] = service
    return service

# client -> timestamps of its recent POST /map calls
_recent: dict[str, deque[float]] = defaultdict(lambda: deque(maxlen=100))


def _client_key() -> str:
    forwarded = request.headers.get('X-Forwarded-For', '')
    return forwarded.split(',')[0].strip() or request.remote_addr or 'anon'


def _forbidden(cfg: ServerConfig):
    if cfg.api_key and request.headers.get('X-API-Key') != cfg.api_key:
        return jsonify({'code': 'rest_forbidden', 'message': 'unauthorized', 'data': {'status': 401}}), 401
    return None


def _throttled(cfg: ServerConfig, client: str):
    limit, window = int(cfg.rate_limit_n or 0), float(cfg.rate_limit_window_sec)
    if limit <= 0:
        return None
    now = time.time()
    calls = _recent[client]
    while calls and now - calls[0] > window:
        calls.popleft()
    if len(calls) < limit:
        calls.append(now)
        return None
    resp = jsonify({'code': 'rate_limited', 'message': 'Too many requests.', 'data': {'status': 429}})
    resp.status_code = 429
    resp.headers['Retry-After'] = f"{max(0.0, window - (now - calls[0])):.2f}"
    return resp

@app.before_request
def _guard():
    cfg = _settings()
    denied = _forbidden(cfg)
    if denied is None and request.method == 'POST' and request.path == '/map':
        denied = _throttled(cfg, _client_key())
    return denied

@app.get('/discover')
def get_discover():
    return jsonify(get_service().discover(request.args.get('product_id', 0)))

@app.post('/map')
def post_map():
    payload = request.get_json(force=True, silent=True) or {}
    env = get_service().map(
        payload.get('product_id'),
        payload.get('mapping'),
        mode=str(payload.get('mode') or ''),
        options=payload.get('options'),
    )
    return jsonify(env), status_of(env)

@app.get('/terms/<taxonomy>')
def get_terms(taxonomy: str):
    number = request.args.get('number', '0')
    body = get_service().terms(
        taxonomy,
        search=request.args.get('search', ''),
        number=int(number) if number.isdigit() else 0,
    )
    return jsonify(body), (400 if 'error' in body else 200)

@app.post('/variations/update')
def post_variations_update():
    payload = request.get_json(force=True, silent=True) or {}
    env = get_service().resync_children(
        payload.get('product_id'),
        payload.get('taxonomies'),
        options=payload,
    )
    return jsonify(env), status_of(env)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=8000)
