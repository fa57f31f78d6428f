"""
TaskCube Engagement Ledger errors.
Recoverable, user-facing outcomes of check-in and referral operations.
"""


class LedgerError(Exception):
    """Base class for engagement ledger errors."""
    code = "ledger_error"

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {"success": False, "error": self.message, "code": self.code}


class AlreadyCheckedIn(LedgerError):
    """Already checked in within the last 24 hours."""
    code = "already_checked_in"

    def __init__(self, next_check_in_at=None):
        super().__init__("Already checked in, come back later")
        self.next_check_in_at = next_check_in_at

    def to_dict(self):
        data = super().to_dict()
        data["next_check_in_at"] = self.next_check_in_at
        return data


class NoPriorCheckIn(LedgerError):
    """Make-up requires at least one previous check-in."""
    code = "no_prior_check_in"


class MakeupWindowExpired(LedgerError):
    """The missed gap is longer than the level allows."""
    code = "makeup_window_expired"

    def __init__(self, days_since, allowed):
        super().__init__(
            f"Makeup period expired: {days_since} day(s) since last check-in, level allows {allowed}"
        )
        self.days_since = days_since
        self.allowed = allowed

    def to_dict(self):
        data = super().to_dict()
        data["days_since_last_check_in"] = self.days_since
        data["makeup_days_allowed"] = self.allowed
        return data


class InviteError(LedgerError):
    """Invite could not be registered."""
    code = "invite_rejected"


class TransactionError(LedgerError):
    """Deposit or withdrawal rejected."""
    code = "transaction_rejected"


class InsufficientBalance(TransactionError):
    """Withdrawal exceeds the available balance."""
    code = "insufficient_balance"


class ClaimError(LedgerError):
    """Reward claim rejected."""
    code = "claim_rejected"


class ClaimExceedsBounty(ClaimError):
    """Claim amount exceeds the unclaimed bounty."""
    code = "claim_exceeds_bounty"

    def __init__(self, requested, claimable):
        super().__init__(f"Claim of {requested} exceeds claimable bounty {claimable}")
        self.requested = requested
        self.claimable = claimable

    def to_dict(self):
        data = super().to_dict()
        data["claimable"] = str(self.claimable)
        return data
