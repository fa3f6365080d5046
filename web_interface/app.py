#!/usr/bin/env python3
"""
Web interface for the time-locked vault ledger

Callers sign each request with their SECP256k1 key and send ``X-Caller``
(compressed public key hex), ``X-Timestamp``, ``X-Nonce`` and
``X-Signature`` headers. The signature covers the method, path, timestamp,
nonce and raw body (see ``identity.request_message``). Requests outside the
freshness window or reusing a nonce are rejected.
"""

import logging
import os
import threading
from functools import wraps
from typing import Dict, Tuple

from flask import Flask, current_app, g, jsonify, request

from timelock_vault.adapters import AssetBook, ProgramStore, SystemClock
from timelock_vault.config import SIGNATURE_MAX_AGE, LedgerConfig
from timelock_vault.errors import NotAuthorized, VaultAlreadyExists, VaultError, VaultNotFound
from timelock_vault.identity import acting_as, request_message, verify_caller
from timelock_vault.registry import TrustRegistry
from timelock_vault.vault import VaultLedger

logger = logging.getLogger(__name__)


class NonceCache:
    """Nonces seen per caller within the freshness window"""

    def __init__(self, max_age: int = SIGNATURE_MAX_AGE):
        self.max_age = max_age
        self._seen: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    def is_fresh(self, timestamp: int, now: int) -> bool:
        return abs(now - timestamp) <= self.max_age

    def claim(self, caller: str, nonce: str, timestamp: int, now: int) -> bool:
        """Record the nonce; False if the caller already used it"""
        with self._lock:
            # Entries past the window can go: their timestamps would fail is_fresh
            cutoff = now - self.max_age
            for key in [k for k, ts in self._seen.items() if ts < cutoff]:
                del self._seen[key]

            key = (caller, nonce)
            if key in self._seen:
                return False
            self._seen[key] = timestamp
            return True

    def __len__(self):
        return len(self._seen)


def _error_status(error: VaultError) -> int:
    if isinstance(error, VaultNotFound):
        return 404
    if isinstance(error, VaultAlreadyExists):
        return 409
    if isinstance(error, NotAuthorized):
        return 403
    return 400


def _vault_view(ledger: VaultLedger, identity: str) -> dict:
    record = ledger.get_vault(identity)
    view = record.to_dict()
    view.update({
        'identity': identity,
        'withdrawable': ledger.is_withdrawable(identity),
        'time_until_unlock': ledger.time_until_unlock(identity),
        'status': ledger.vault_status_message(identity)
    })
    return view


def _unauthorized(message: str):
    return jsonify({'success': False, 'error': message}), 401


def signed(view):
    """Require a fresh, unreplayed caller signature and bind the caller for the request"""
    @wraps(view)
    def wrapper(*args, **kwargs):
        caller = request.headers.get('X-Caller')
        signature = request.headers.get('X-Signature')
        nonce = request.headers.get('X-Nonce')
        raw_timestamp = request.headers.get('X-Timestamp')
        if not (caller and signature and nonce and raw_timestamp):
            return _unauthorized('Missing caller signature')
        try:
            timestamp = int(raw_timestamp)
        except ValueError:
            return _unauthorized('Invalid request timestamp')

        message = request_message(request.method, request.path, request.get_data(), timestamp, nonce)
        if not verify_caller(caller, message, signature):
            logger.debug("Bad signature from %s", caller)
            return _unauthorized('Invalid caller signature')

        nonces = current_app.config['NONCES']
        now = current_app.config['LEDGER'].clock.current_time()
        if not nonces.is_fresh(timestamp, now):
            logger.debug("Stale request from %s: timestamp %d, now %d", caller, timestamp, now)
            return _unauthorized('Stale request')
        if not nonces.claim(caller, nonce, timestamp, now):
            logger.warning("Replayed request from %s with nonce %s", caller, nonce)
            return _unauthorized('Replayed request')

        g.caller = caller
        with acting_as(caller):
            return view(*args, **kwargs)
    return wrapper


def create_app(ledger: VaultLedger = None, registry: TrustRegistry = None,
               config: LedgerConfig = None) -> Flask:
    """Build the API around a ledger and registry, creating defaults from the environment"""
    if ledger is None or registry is None:
        config = config or LedgerConfig.from_env()
    if ledger is None:
        ledger = VaultLedger(config, SystemClock(), AssetBook(config.custody))
    if registry is None:
        registry = TrustRegistry(config.admin, ProgramStore())

    app = Flask(__name__)
    app.config['LEDGER'] = ledger
    app.config['REGISTRY'] = registry
    app.config['NONCES'] = NonceCache()

    @app.errorhandler(VaultError)
    def handle_vault_error(error):
        return jsonify({
            'success': False,
            'error': str(error),
            'code': error.code
        }), _error_status(error)

    @app.route('/api/vaults', methods=['POST'])
    @signed
    def create_vault():
        """Lock the caller's assets"""
        data = request.get_json(silent=True) or {}
        record = ledger.create_vault(None, data.get('amount'), data.get('lock_duration'))
        body = record.to_dict()
        body.update({'success': True, 'identity': g.caller})
        return jsonify(body), 201

    @app.route('/api/vaults/withdraw', methods=['POST'])
    @signed
    def withdraw():
        amount = ledger.withdraw()
        return jsonify({'success': True, 'withdrawn': amount})

    @app.route('/api/vaults/<identity>/emergency_withdraw', methods=['POST'])
    @signed
    def emergency_withdraw(identity):
        amount = ledger.emergency_withdraw(None, identity)
        return jsonify({'success': True, 'withdrawn': amount})

    @app.route('/api/vaults/<identity>')
    def get_vault(identity):
        return jsonify(_vault_view(ledger, identity))

    @app.route('/api/total_locked')
    def total_locked():
        return jsonify({
            'total_locked': ledger.get_total_locked(),
            'vaults': ledger.vault_count()
        })

    @app.route('/api/contracts', methods=['POST'])
    @signed
    def register_contract():
        data = request.get_json(silent=True) or {}
        program = data.get('program')
        if not program:
            return jsonify({'success': False, 'error': 'program is required'}), 400
        registry.register_trusted_contract(None, program)
        return jsonify({'success': True, 'registered': True}), 201

    @app.route('/api/contracts/<program>')
    def get_contract(program):
        trusted = registry.is_trusted_contract(program)
        body = {'program': program, 'trusted': trusted}
        if trusted:
            body['intact'] = registry.verify_contract_integrity(program)
        return jsonify(body)

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 10000))
    create_app().run(
        host="0.0.0.0",
        port=port,
        debug=False
    )
