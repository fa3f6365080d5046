#!/usr/bin/env python3
"""
Complete demo of the time-locked vault ledger and trust registry
"""

import logging

from timelock_vault.adapters import AssetBook, ManualClock, ProgramStore
from timelock_vault.config import LedgerConfig
from timelock_vault.errors import VaultError
from timelock_vault.identity import Principal
from timelock_vault.registry import TrustRegistry
from timelock_vault.vault import VaultLedger


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("🏦 TIME-LOCKED VAULT - COMPLETE DEMO")
    print("=" * 60)
    print()

    # Step 1: Setup
    print("🔧 STEP 1: Setting up participants")
    print("-" * 40)

    admin = Principal()
    depositor = Principal()
    print(f"✅ Admin: {admin.identity[:16]}...")
    print(f"✅ Depositor: {depositor.identity[:16]}...")

    config = LedgerConfig.default(admin.identity)
    clock = ManualClock(start=1000)
    book = AssetBook(config.custody)
    book.mint(depositor.identity, 5000)
    programs = ProgramStore()

    ledger = VaultLedger(config, clock, book)
    registry = TrustRegistry(config.admin, programs)
    print(f"✅ Minimum lock: {config.min_lock_duration} seconds")
    print(f"✅ Depositor balance: {book.balance_of(depositor.identity):,}")
    print()

    # Step 2: Trust registry
    print("🔏 STEP 2: Registering a trusted program")
    print("-" * 40)

    fingerprint = programs.deploy("escrow-helper", b"escrow helper v1")
    registry.register_trusted_contract(admin.identity, "escrow-helper")
    print(f"✅ Registered escrow-helper: {fingerprint.hex()[:16]}...")
    print(f"   Integrity intact: {registry.verify_contract_integrity('escrow-helper')}")

    programs.deploy("escrow-helper", b"escrow helper v2")
    print(f"   After redeploy, intact: {registry.verify_contract_integrity('escrow-helper')}")
    print()

    # Step 3: Lock assets
    print("🔒 STEP 3: Creating a vault")
    print("-" * 40)

    record = ledger.create_vault(depositor.identity, 1000, 3600)
    print(f"✅ Locked {record.amount:,} at t={record.created_at}, unlocks at t={record.unlock_time}")
    print(f"   Total locked: {ledger.get_total_locked():,}")
    print(f"   Status: {ledger.vault_status_message(depositor.identity)}")
    print()

    # Step 4: Withdrawals
    print("💰 STEP 4: Withdrawing")
    print("-" * 40)

    clock.set(4599)
    print(f"Test 1: Withdraw at t={clock.current_time()}")
    try:
        ledger.withdraw(depositor.identity)
        print("   ❌ UNEXPECTED: Should have failed")
    except VaultError as e:
        print(f"   ✅ EXPECTED FAILURE: {e}")
        print(f"   ⏳ Time until unlock: {ledger.time_until_unlock(depositor.identity)}")

    clock.set(4600)
    print(f"Test 2: Withdraw at t={clock.current_time()}")
    amount = ledger.withdraw(depositor.identity)
    print(f"   ✅ SUCCESS: Withdrew {amount:,}")
    print()

    # Step 5: Summary
    print("📊 Final Statistics:")
    print(f"   Total locked: {ledger.get_total_locked():,}")
    print(f"   Open vaults: {ledger.vault_count()}")
    print(f"   Depositor balance: {book.balance_of(depositor.identity):,}")
    print(f"   Custody balance: {book.balance_of(config.custody):,}")


if __name__ == "__main__":
    main()
