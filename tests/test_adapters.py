import unittest

from timelock_vault.adapters import AssetBook, ManualClock, ProgramStore, SystemClock, code_hash
from timelock_vault.config import LedgerConfig
from timelock_vault.errors import CodeNotFound, InsufficientBalance, NotAuthorized, TransferFailed
from timelock_vault.identity import Principal, acting_as, current_caller, request_message, verify_caller


class TestClocks(unittest.TestCase):

    def test_manual_clock(self):
        clock = ManualClock(start=100)
        self.assertEqual(clock.current_time(), 100)
        self.assertEqual(clock.advance(50), 150)
        self.assertEqual(clock.set(150), 150)

        with self.assertRaises(ValueError):
            clock.set(149)
        with self.assertRaises(ValueError):
            clock.advance(-1)
        self.assertEqual(clock.current_time(), 150)

    def test_system_clock_non_decreasing(self):
        clock = SystemClock()
        readings = [clock.current_time() for _ in range(50)]
        self.assertEqual(readings, sorted(readings))
        self.assertGreater(readings[0], 0)


class TestAssetBook(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.book = AssetBook("custody")
        self.book.mint("alice", 1000)
        self.book.transfer("alice", "custody", 400)

    def test_inbound_transfer(self):
        self.assertEqual(self.book.balance_of("alice"), 600)
        self.assertEqual(self.book.balance_of("custody"), 400)

    def test_insufficient_balance(self):
        with self.assertRaises(InsufficientBalance):
            self.book.transfer("alice", "bob", 601)
        self.assertEqual(self.book.balance_of("alice"), 600)

    def test_rejects_bad_transfers(self):
        with self.assertRaises(TransferFailed):
            self.book.transfer("alice", "bob", 0)
        with self.assertRaises(TransferFailed):
            self.book.transfer("alice", "alice", 10)

    def test_outbound_requires_allowance(self):
        """Test custody funds cannot move without a scoped allowance"""
        with self.assertRaises(TransferFailed):
            self.book.transfer("custody", "alice", 100)
        self.assertEqual(self.book.balance_of("custody"), 400)

    def test_allowance_exact_amount(self):
        with self.book.custody_allowance("custody", 100) as allowance:
            with self.assertRaises(TransferFailed):
                self.book.transfer("custody", "alice", 150, allowance=allowance)
            self.book.transfer("custody", "alice", 100, allowance=allowance)

        self.assertEqual(self.book.balance_of("custody"), 300)

    def test_allowance_single_use(self):
        with self.book.custody_allowance("custody", 100) as allowance:
            self.book.transfer("custody", "alice", 100, allowance=allowance)
            with self.assertRaises(TransferFailed):
                self.book.transfer("custody", "alice", 100, allowance=allowance)

        self.assertEqual(self.book.balance_of("custody"), 300)

    def test_allowance_revoked_on_exit(self):
        with self.book.custody_allowance("custody", 100) as allowance:
            self.assertEqual(self.book.live_allowances(), 1)

        self.assertTrue(allowance.revoked)
        self.assertEqual(self.book.live_allowances(), 0)
        with self.assertRaises(TransferFailed):
            self.book.transfer("custody", "alice", 100, allowance=allowance)

    def test_allowance_for_foreign_custody(self):
        with self.assertRaises(ValueError):
            with self.book.custody_allowance("elsewhere", 100):
                pass

    def test_mint_validation(self):
        with self.assertRaises(ValueError):
            self.book.mint("custody", 10)
        with self.assertRaises(ValueError):
            self.book.mint("alice", 0)


class TestProgramStore(unittest.TestCase):

    def test_fingerprints(self):
        store = ProgramStore()
        first = store.deploy("oracle", b"v1")

        self.assertEqual(len(first), 32)
        self.assertEqual(store.resolve_code_hash("oracle"), first)
        self.assertEqual(first, code_hash(b"v1"))
        self.assertNotEqual(store.deploy("oracle", b"v2"), first)

    def test_missing_program(self):
        store = ProgramStore()
        with self.assertRaises(CodeNotFound):
            store.resolve_code_hash("ghost")

        store.deploy("ghost", b"boo")
        store.remove("ghost")
        self.assertFalse(store.is_deployed("ghost"))

    def test_code_must_be_bytes(self):
        with self.assertRaises(TypeError):
            ProgramStore().deploy("oracle", "not bytes")


class TestIdentity(unittest.TestCase):

    def test_principal_identity(self):
        principal = Principal()
        identity = principal.identity

        self.assertEqual(len(identity), 66)
        self.assertIn(identity[:2], ("02", "03"))

        restored = Principal(bytes.fromhex(principal.private_key_hex()))
        self.assertEqual(restored.identity, identity)

    def test_verify_caller(self):
        alice = Principal()
        bob = Principal()
        signature = alice.sign(b"withdraw")

        self.assertTrue(verify_caller(alice.identity, b"withdraw", signature))
        self.assertFalse(verify_caller(alice.identity, b"withdraw all", signature))
        self.assertFalse(verify_caller(bob.identity, b"withdraw", signature))
        self.assertFalse(verify_caller("zz", b"withdraw", signature))
        self.assertFalse(verify_caller(alice.identity, b"withdraw", "00" * 64))

    def test_signed_request_binding(self):
        alice = Principal()
        signature = alice.sign_request('post', '/api/vaults/withdraw', b"", 1000, "n1")
        message = request_message('POST', '/api/vaults/withdraw', b"", 1000, "n1")

        self.assertTrue(verify_caller(alice.identity, message, signature))
        for changed in (request_message('POST', '/api/vaults', b"", 1000, "n1"),
                        request_message('POST', '/api/vaults/withdraw', b"{}", 1000, "n1"),
                        request_message('POST', '/api/vaults/withdraw', b"", 1001, "n1"),
                        request_message('POST', '/api/vaults/withdraw', b"", 1000, "n2")):
            self.assertFalse(verify_caller(alice.identity, changed, signature))

    def test_bound_caller(self):
        with self.assertRaises(NotAuthorized):
            current_caller()

        with acting_as("alice"):
            self.assertEqual(current_caller(), "alice")
            with acting_as("bob"):
                self.assertEqual(current_caller(), "bob")
            self.assertEqual(current_caller(), "alice")

        with self.assertRaises(NotAuthorized):
            current_caller()


class TestLedgerConfig(unittest.TestCase):

    def test_defaults(self):
        config = LedgerConfig.default("admin")
        self.assertEqual(config.min_lock_duration, 3600)
        self.assertEqual(config.custody, "vault-custody")
        self.assertEqual(config.status_message(False), "Vault is still locked")

    def test_validation(self):
        with self.assertRaises(ValueError):
            LedgerConfig(admin="")
        with self.assertRaises(ValueError):
            LedgerConfig(admin="vault-custody")
        with self.assertRaises(ValueError):
            LedgerConfig(admin="admin", min_lock_duration=0)

    def test_from_env(self):
        config = LedgerConfig.from_env({
            "VAULT_ADMIN": "root",
            "VAULT_CUSTODY": "pool",
            "VAULT_MIN_LOCK_DURATION": "120"
        })
        self.assertEqual(config.admin, "root")
        self.assertEqual(config.custody, "pool")
        self.assertEqual(config.min_lock_duration, 120)

        self.assertEqual(LedgerConfig.from_env({"VAULT_ADMIN": "root"}).min_lock_duration, 3600)

        with self.assertRaises(ValueError):
            LedgerConfig.from_env({})
        with self.assertRaises(ValueError):
            LedgerConfig.from_env({"VAULT_ADMIN": "root", "VAULT_MIN_LOCK_DURATION": "soon"})


if __name__ == '__main__':
    unittest.main()
