"""Error taxonomy for the FanStake program.

Every failure aborts the whole instruction with no state change. Inside the
core, failures are raised as ``ProgramError`` subclasses; ``core.engine.execute``
converts them into a rejected ``InstructionResult`` carrying the ``ErrorCode``,
and ``execute_or_raise`` raises them again for callers that prefer exceptions.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorCode(Enum):
    # Input validation
    NAME_TOO_LONG = "name_too_long"
    SYMBOL_TOO_LONG = "symbol_too_long"
    URI_TOO_LONG = "uri_too_long"
    CREATOR_SHARE_TOO_HIGH = "creator_share_too_high"
    FEE_RATE_TOO_HIGH = "fee_rate_too_high"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_PARAMETER = "invalid_parameter"

    # State validation
    CURVE_NOT_ACTIVE = "curve_not_active"
    UNAUTHORIZED = "unauthorized"
    TOKENS_STILL_VESTING = "tokens_still_vesting"
    NOTHING_TO_CLAIM = "nothing_to_claim"
    SHARE_ALREADY_CLAIMED = "share_already_claimed"
    ACCOUNT_ALREADY_EXISTS = "account_already_exists"
    ACCOUNT_NOT_FOUND = "account_not_found"

    # Market validation
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    INSUFFICIENT_TOKENS = "insufficient_tokens"
    INSUFFICIENT_BASE = "insufficient_base"

    # Collaborator (token ledger / settlement transfer) failures
    INSUFFICIENT_FUNDS = "insufficient_funds"
    MISSING_AUTHORITY = "missing_authority"

    # Arithmetic validation
    ARITHMETIC_OVERFLOW = "arithmetic_overflow"

    INVARIANT_VIOLATION = "invariant_violation"


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.NAME_TOO_LONG: "Name must be 32 bytes or less.",
    ErrorCode.SYMBOL_TOO_LONG: "Symbol must be 10 bytes or less.",
    ErrorCode.URI_TOO_LONG: "URI must be 200 bytes or less.",
    ErrorCode.CREATOR_SHARE_TOO_HIGH: "Creator share cannot exceed 20%.",
    ErrorCode.FEE_RATE_TOO_HIGH: "Fee rate cannot exceed 10000 bps.",
    ErrorCode.INVALID_AMOUNT: "Amount must be greater than zero.",
    ErrorCode.INVALID_PARAMETER: "Parameter outside its domain.",
    ErrorCode.CURVE_NOT_ACTIVE: "Bonding curve is not active.",
    ErrorCode.UNAUTHORIZED: "Unauthorized: signer may not perform this action.",
    ErrorCode.TOKENS_STILL_VESTING: "Creator tokens are still vesting.",
    ErrorCode.NOTHING_TO_CLAIM: "Creator share is zero; nothing to claim.",
    ErrorCode.SHARE_ALREADY_CLAIMED: "Creator share was already issued.",
    ErrorCode.ACCOUNT_ALREADY_EXISTS: "Account already exists.",
    ErrorCode.ACCOUNT_NOT_FOUND: "Account not found.",
    ErrorCode.SLIPPAGE_EXCEEDED: "Slippage tolerance exceeded.",
    ErrorCode.INSUFFICIENT_TOKENS: "Insufficient tokens in the curve.",
    ErrorCode.INSUFFICIENT_BASE: "Insufficient settlement currency in the curve.",
    ErrorCode.INSUFFICIENT_FUNDS: "Insufficient balance for transfer.",
    ErrorCode.MISSING_AUTHORITY: "Missing or invalid authority for account.",
    ErrorCode.ARITHMETIC_OVERFLOW: "Arithmetic overflow or underflow.",
    ErrorCode.INVARIANT_VIOLATION: "Post-state violates an invariant.",
}


def error_message(code: ErrorCode) -> str:
    return _MESSAGES[code]


class ProgramError(Exception):
    """Base class: a precondition failure that aborts the instruction."""

    def __init__(self, code: ErrorCode, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        msg = error_message(code)
        super().__init__(f"{code.value}: {detail}" if detail else f"{code.value}: {msg}")


class ArithmeticOverflowError(ProgramError):
    """Raised when a checked add/sub/mul/div leaves its integer domain."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(ErrorCode.ARITHMETIC_OVERFLOW, detail)


class AccountError(ProgramError):
    """Raised by the account store (missing, duplicate or mistyped records)."""


class LedgerError(ProgramError):
    """Raised by the token / settlement-currency capabilities."""


class InvariantViolationError(ProgramError):
    """Raised when a post-state violates one or more ledger invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(ErrorCode.INVARIANT_VIOLATION, ", ".join(violations))
