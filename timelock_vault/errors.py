class VaultError(Exception):
    code = "VaultError"


class NotAuthorized(VaultError):
    code = "NotAuthorized"

    def __init__(self, caller, action=None, message=None):
        self.caller = caller
        self.action = action
        if message is None:
            if action:
                message = f"Caller {caller} is not authorized to {action}"
            else:
                message = f"Caller {caller} is not authorized"
        super().__init__(message)


class VaultAlreadyExists(NotAuthorized):
    code = "VaultAlreadyExists"

    def __init__(self, identity):
        self.identity = identity
        super().__init__(identity, "create_vault", f"Vault for {identity} already exists")


class VaultLocked(VaultError):
    code = "VaultLocked"

    def __init__(self, identity, unlock_time, now):
        self.identity = identity
        self.unlock_time = unlock_time
        self.now = now
        message = f"Vault for {identity} is locked until {unlock_time} (now {now})"
        super().__init__(message)


class InvalidAmount(VaultError):
    code = "InvalidAmount"

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Invalid amount {amount!r}, must be a positive integer")


class VaultNotFound(VaultError):
    code = "VaultNotFound"

    def __init__(self, identity):
        self.identity = identity
        super().__init__(f"No vault for {identity}")


class InvalidUnlockTime(VaultError):
    code = "InvalidUnlockTime"

    def __init__(self, lock_duration, minimum):
        self.lock_duration = lock_duration
        self.minimum = minimum
        message = f"Lock duration {lock_duration!r} is below the minimum of {minimum}"
        super().__init__(message)


class UntrustedContract(VaultError):
    code = "UntrustedContract"

    def __init__(self, program, reason):
        self.program = program
        self.reason = reason
        super().__init__(f"Contract {program} is untrusted: {reason}")


class TransferFailed(VaultError):
    code = "TransferFailed"

    def __init__(self, sender, recipient, amount, reason):
        self.sender = sender
        self.recipient = recipient
        self.amount = amount
        self.reason = reason
        message = f"Transfer of {amount} from {sender} to {recipient} failed: {reason}"
        super().__init__(message)


class InsufficientBalance(TransferFailed):
    code = "InsufficientBalance"

    def __init__(self, sender, recipient, amount, balance):
        self.balance = balance
        super().__init__(
            sender, recipient, amount, f"balance {balance} is below {amount}"
        )


class CodeNotFound(VaultError):
    code = "CodeNotFound"

    def __init__(self, program):
        self.program = program
        super().__init__(f"No code deployed for {program}")


class LedgerInvariantError(VaultError):
    code = "LedgerInvariantError"

    def __init__(self, total_locked, expected):
        self.total_locked = total_locked
        self.expected = expected
        message = f"total_locked {total_locked} does not match sum of vaults {expected}"
        super().__init__(message)
