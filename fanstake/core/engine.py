"""Dispatch-table orchestrator for the FanStake program.

``execute(state, params, ctx)`` is the single entry point. It:

1. Validates parameter domains (u16 rates, u64 amounts).
2. Dispatches to the instruction handler, which runs against a private copy
   of the state: every precondition is checked first, then the reserve
   ledger is updated, then funds and tokens move.
3. Returns an ``InstructionResult``: accepted with the new state and effect,
   or rejected with an ``ErrorCode``. A rejected call never touches the
   caller's state.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Optional

from ..errors import (
    ArithmeticOverflowError,
    ErrorCode,
    InvariantViolationError,
    ProgramError,
)
from ..state.balances import NATIVE_ASSET, AssetId
from ..state.canonical import canonical_hex_fixed_allow_0x
from ..state.ledgers import MintAccount, create_mint, destroy, issue, transfer
from .curve_math import (
    BPS_DENOM,
    TOKEN_DECIMALS,
    TOTAL_SUPPLY,
    U64_MAX,
    TradeQuote,
    checked_add,
    creator_share_tokens,
    preview_buy,
    preview_sell,
)
from .custody import (
    DEFAULT_PROGRAM_ID,
    fee_vault_address,
    ledger_authority,
    mint_address,
    registry_address,
    vault_authority,
    vesting_address,
)
from .reserves import apply_buy, apply_sell, check_ledger, new_ledger
from .types import (
    MAX_CREATOR_SHARE_BPS,
    MAX_NAME_LEN,
    MAX_SYMBOL_LEN,
    MAX_URI_LEN,
    Effect,
    Event,
    Instruction,
    InstructionContext,
    InstructionParams,
    InstructionResult,
    PlatformRegistry,
    ProgramState,
    ReserveLedger,
    VestingSchedule,
)
from .vesting import check_sell_gate, new_schedule


logger = logging.getLogger(__name__)

Handler = Callable[[ProgramState, InstructionParams, InstructionContext], Effect]

U16_MAX = (1 << 16) - 1

# Per-instruction bounds: list of (field_name, min_val, max_val).
_PARAM_BOUNDS: dict[Instruction, list[tuple[str, int, int]]] = {
    Instruction.INITIALIZE: [("fee_bps", 0, U16_MAX)],
    Instruction.CREATE_ARTIST_TOKEN: [("creator_share_bps", 0, U16_MAX)],
    Instruction.CLAIM_ARTIST_SHARE: [],
    Instruction.UPDATE_ARTIST_TOKEN: [],
    Instruction.BUY: [("amount_in", 0, U64_MAX), ("min_amount_out", 0, U64_MAX)],
    Instruction.SELL: [("amount_in", 0, U64_MAX), ("min_amount_out", 0, U64_MAX)],
}

# Per-instruction text fields.
_STR_FIELDS: dict[Instruction, list[str]] = {
    Instruction.CREATE_ARTIST_TOKEN: ["name", "symbol", "uri"],
    Instruction.UPDATE_ARTIST_TOKEN: ["uri"],
}


def _validate_params(params: InstructionParams) -> Optional[str]:
    """Check parameter domain bounds. Returns the offending field or None."""
    for field, lo, hi in _PARAM_BOUNDS.get(params.instruction, []):
        val = getattr(params, field)
        if not isinstance(val, int) or isinstance(val, bool) or val < lo or val > hi:
            return field
    for field in _STR_FIELDS.get(params.instruction, []):
        if not isinstance(getattr(params, field), str):
            return field
    return None


def _fail(code: ErrorCode, detail: Optional[str] = None) -> ProgramError:
    return ProgramError(code, detail)


def _utf8_len(s: str) -> int:
    return len(s.encode("utf-8"))


def _program_id(ctx: InstructionContext) -> str:
    return ctx.program_id or DEFAULT_PROGRAM_ID


def _require_asset(ctx: InstructionContext) -> AssetId:
    if not ctx.asset_id:
        raise _fail(ErrorCode.INVALID_PARAMETER, "instruction requires an asset_id")
    try:
        asset_id = canonical_hex_fixed_allow_0x(ctx.asset_id, nbytes=32, name="asset_id")
    except (TypeError, ValueError) as exc:
        raise _fail(ErrorCode.INVALID_PARAMETER, str(exc)) from exc
    if asset_id == NATIVE_ASSET:
        raise _fail(ErrorCode.INVALID_PARAMETER, "asset_id names the settlement currency")
    return asset_id


def _ledger_effect(event: Event, ledger: ReserveLedger, **kwargs: int) -> Effect:
    return Effect(
        event=event,
        asset_id=ledger.asset_id,
        virtual_base_reserve=ledger.virtual_base_reserve,
        virtual_asset_reserve=ledger.virtual_asset_reserve,
        real_base_reserve=ledger.real_base_reserve,
        real_asset_reserve=ledger.real_asset_reserve,
        **kwargs,
    )


def _require_invariants(ledger: ReserveLedger) -> None:
    violations = check_ledger(ledger)
    if violations:
        raise InvariantViolationError(violations)


# -- Handlers -------------------------------------------------------------------

def _initialize(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    pid = _program_id(ctx)
    if ctx.deployer is not None and ctx.signer != ctx.deployer:
        raise _fail(ErrorCode.UNAUTHORIZED, "only the designated deployer may initialize")
    if params.fee_bps > BPS_DENOM:
        raise _fail(ErrorCode.FEE_RATE_TOO_HIGH)

    registry = PlatformRegistry(
        admin=ctx.signer,
        fee_bps=params.fee_bps,
        fee_destination=fee_vault_address(pid),
        creator_count=0,
    )
    state.accounts.create(registry_address(pid), registry)
    logger.info("platform initialized: admin=%s fee_bps=%d", ctx.signer, params.fee_bps)
    return Effect(event=Event.PLATFORM_INITIALIZED)


def _create_artist_token(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    pid = _program_id(ctx)
    asset_id = _require_asset(ctx)
    if _utf8_len(params.name) > MAX_NAME_LEN:
        raise _fail(ErrorCode.NAME_TOO_LONG)
    if _utf8_len(params.symbol) > MAX_SYMBOL_LEN:
        raise _fail(ErrorCode.SYMBOL_TOO_LONG)
    if _utf8_len(params.uri) > MAX_URI_LEN:
        raise _fail(ErrorCode.URI_TOO_LONG)
    if params.creator_share_bps > MAX_CREATOR_SHARE_BPS:
        raise _fail(ErrorCode.CREATOR_SHARE_TOO_HIGH)

    reg_addr = registry_address(pid)
    registry = state.accounts.load(reg_addr, PlatformRegistry)
    authority = ledger_authority(asset_id, pid)
    share = creator_share_tokens(TOTAL_SUPPLY, params.creator_share_bps)
    ledger = replace(
        new_ledger(
            creator=ctx.signer,
            asset_id=asset_id,
            display_name=params.name,
            ticker=params.symbol,
            metadata_uri=params.uri,
            creator_share_bps=params.creator_share_bps,
            created_at=ctx.now,
        ),
        creator_share_issued=share > 0,
    )
    _require_invariants(ledger)
    schedule = new_schedule(asset_id, ctx.signer, ctx.now)
    creator_count = checked_add(registry.creator_count, 1)

    state.accounts.create(authority.address, ledger)
    mint = mint_address(asset_id, pid)
    create_mint(state.accounts, mint, asset=asset_id, authority=authority.address, decimals=TOKEN_DECIMALS)
    if share > 0:
        issue(state.accounts, state.balances, mint, ctx.signer, share, authority=authority)
        logger.info("issued %d creator tokens for %s", share, asset_id)
    state.accounts.create(vesting_address(asset_id, pid), schedule)
    state.accounts.store(reg_addr, replace(registry, creator_count=creator_count))

    logger.info("artist token created: %s (%s) asset=%s", params.name, params.symbol, asset_id)
    return _ledger_effect(
        Event.ARTIST_TOKEN_CREATED,
        ledger,
        creator_tokens=share,
        unlock_at=schedule.unlock_at,
    )


def _claim_artist_share(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    pid = _program_id(ctx)
    asset_id = _require_asset(ctx)
    authority = ledger_authority(asset_id, pid)
    ledger = state.accounts.load(authority.address, ReserveLedger)
    _require_invariants(ledger)
    if not ledger.is_active:
        raise _fail(ErrorCode.CURVE_NOT_ACTIVE)
    if ctx.signer != ledger.creator:
        raise _fail(ErrorCode.UNAUTHORIZED, "only the creator may claim")
    share = creator_share_tokens(ledger.total_supply, ledger.creator_share_bps)
    if share == 0:
        raise _fail(ErrorCode.NOTHING_TO_CLAIM)
    if ledger.creator_share_issued:
        raise _fail(ErrorCode.SHARE_ALREADY_CLAIMED)
    schedule = new_schedule(asset_id, ctx.signer, ctx.now)

    # The vesting record is create-if-absent; an existing one aborts the claim.
    state.accounts.create(vesting_address(asset_id, pid), schedule)
    issue(state.accounts, state.balances, mint_address(asset_id, pid), ctx.signer, share, authority=authority)
    updated = replace(ledger, creator_share_issued=True)
    state.accounts.store(authority.address, updated)

    logger.info("claimed %d creator tokens for %s; locked until %d", share, asset_id, schedule.unlock_at)
    return _ledger_effect(
        Event.ARTIST_SHARE_CLAIMED,
        updated,
        creator_tokens=share,
        unlock_at=schedule.unlock_at,
    )


def _update_artist_token(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    asset_id = _require_asset(ctx)
    if _utf8_len(params.uri) > MAX_URI_LEN:
        raise _fail(ErrorCode.URI_TOO_LONG)
    address = ledger_authority(asset_id, _program_id(ctx)).address
    ledger = state.accounts.load(address, ReserveLedger)
    if ctx.signer != ledger.creator:
        raise _fail(ErrorCode.UNAUTHORIZED, "only the creator may update metadata")

    updated = replace(ledger, metadata_uri=params.uri)
    state.accounts.store(address, updated)
    logger.info("metadata updated for %s", asset_id)
    return _ledger_effect(Event.ARTIST_TOKEN_UPDATED, updated)


def _buy(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    pid = _program_id(ctx)
    asset_id = _require_asset(ctx)
    authority = ledger_authority(asset_id, pid)
    ledger = state.accounts.load(authority.address, ReserveLedger)
    registry = state.accounts.load(registry_address(pid), PlatformRegistry)
    if not ledger.is_active:
        raise _fail(ErrorCode.CURVE_NOT_ACTIVE)
    if params.amount_in == 0:
        raise _fail(ErrorCode.INVALID_AMOUNT)

    quote = preview_buy(
        params.amount_in,
        ledger.virtual_base_reserve,
        ledger.virtual_asset_reserve,
        registry.fee_bps,
    )
    logger.debug("buy quote for %s: %s", asset_id, quote)
    if quote.output < params.min_amount_out:
        raise _fail(ErrorCode.SLIPPAGE_EXCEEDED, f"quoted {quote.output} < floor {params.min_amount_out}")
    if quote.output > ledger.real_asset_reserve:
        raise _fail(ErrorCode.INSUFFICIENT_TOKENS)
    updated = apply_buy(ledger, quote.net, quote.output)
    _require_invariants(updated)

    state.accounts.store(authority.address, updated)
    signers = ctx.all_signers()
    transfer(state.balances, ctx.signer, vault_authority(asset_id, pid).address, quote.net, signers=signers)
    if quote.fee > 0:
        transfer(state.balances, ctx.signer, registry.fee_destination, quote.fee, signers=signers)
    issue(state.accounts, state.balances, mint_address(asset_id, pid), ctx.signer, quote.output, authority=authority)

    logger.info("BUY %s: %d base -> %d tokens (fee: %d)", asset_id, quote.net, quote.output, quote.fee)
    return _ledger_effect(
        Event.TOKENS_BOUGHT,
        updated,
        base_amount=quote.net,
        asset_amount=quote.output,
        fee=quote.fee,
    )


def _sell(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> Effect:
    pid = _program_id(ctx)
    asset_id = _require_asset(ctx)
    address = ledger_authority(asset_id, pid).address
    ledger = state.accounts.load(address, ReserveLedger)
    registry = state.accounts.load(registry_address(pid), PlatformRegistry)
    if not ledger.is_active:
        raise _fail(ErrorCode.CURVE_NOT_ACTIVE)
    if params.amount_in == 0:
        raise _fail(ErrorCode.INVALID_AMOUNT)
    schedule = state.accounts.get(vesting_address(asset_id, pid), VestingSchedule)
    gate = check_sell_gate(ledger, schedule, ctx.signer, ctx.now)
    if gate is not None:
        raise _fail(gate, f"unlocks at {schedule.unlock_at}" if schedule else None)

    quote = preview_sell(
        params.amount_in,
        ledger.virtual_base_reserve,
        ledger.virtual_asset_reserve,
        registry.fee_bps,
    )
    logger.debug("sell quote for %s: %s", asset_id, quote)
    if quote.net < params.min_amount_out:
        raise _fail(ErrorCode.SLIPPAGE_EXCEEDED, f"quoted {quote.net} < floor {params.min_amount_out}")
    if quote.gross > ledger.real_base_reserve:
        raise _fail(ErrorCode.INSUFFICIENT_BASE)
    updated = apply_sell(ledger, params.amount_in, quote.gross)
    _require_invariants(updated)

    state.accounts.store(address, updated)
    destroy(
        state.accounts,
        state.balances,
        mint_address(asset_id, pid),
        ctx.signer,
        params.amount_in,
        signers=ctx.all_signers(),
    )
    vault = vault_authority(asset_id, pid)
    transfer(state.balances, vault.address, ctx.signer, quote.net, authority=vault)
    if quote.fee > 0:
        transfer(state.balances, vault.address, registry.fee_destination, quote.fee, authority=vault)

    logger.info("SELL %s: %d tokens -> %d base (fee: %d)", asset_id, params.amount_in, quote.net, quote.fee)
    return _ledger_effect(
        Event.TOKENS_SOLD,
        updated,
        base_amount=quote.net,
        asset_amount=params.amount_in,
        fee=quote.fee,
    )


_DISPATCH: dict[Instruction, Handler] = {
    Instruction.INITIALIZE: _initialize,
    Instruction.CREATE_ARTIST_TOKEN: _create_artist_token,
    Instruction.CLAIM_ARTIST_SHARE: _claim_artist_share,
    Instruction.UPDATE_ARTIST_TOKEN: _update_artist_token,
    Instruction.BUY: _buy,
    Instruction.SELL: _sell,
}


def execute(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> InstructionResult:
    """Execute one instruction against the given state.

    Returns ``InstructionResult`` with ``accepted=True`` and the post-state on
    success, or ``accepted=False`` with an ``ErrorCode``.
    """
    handler = _DISPATCH.get(params.instruction)
    if handler is None:
        return InstructionResult(accepted=False, error=ErrorCode.INVALID_PARAMETER,
                                 detail=f"unknown instruction: {params.instruction}")

    bad_field = _validate_params(params)
    if bad_field is not None:
        return InstructionResult(accepted=False, error=ErrorCode.INVALID_PARAMETER,
                                 detail=f"param_domain:{bad_field}")

    working = state.copy()
    try:
        effect = handler(working, params, ctx)
    except ProgramError as exc:
        logger.debug("%s rejected: %s", params.instruction.value, exc)
        return InstructionResult(accepted=False, error=exc.code, detail=str(exc))
    return InstructionResult(accepted=True, state=working, effect=effect)


def execute_or_raise(state: ProgramState, params: InstructionParams, ctx: InstructionContext) -> InstructionResult:
    """Like ``execute()`` but raises on rejection instead of returning a result.

    Raises:
        ArithmeticOverflowError: A checked operation left its integer domain.
        InvariantViolationError: The post-state violates a ledger invariant.
        ProgramError: Any other precondition failure.
    """
    result = execute(state, params, ctx)
    if result.accepted:
        return result

    code = result.error or ErrorCode.INVALID_PARAMETER
    detail = result.detail
    prefix = f"{code.value}: "
    if detail and detail.startswith(prefix):
        detail = detail[len(prefix):]
    if code is ErrorCode.ARITHMETIC_OVERFLOW:
        raise ArithmeticOverflowError(detail)
    if code is ErrorCode.INVARIANT_VIOLATION:
        raise InvariantViolationError((detail or "").split(", "))
    raise ProgramError(code, detail)


# -- Read-only views ---------------------------------------------------------------

def get_registry(state: ProgramState, program_id: str = DEFAULT_PROGRAM_ID) -> Optional[PlatformRegistry]:
    return state.accounts.get(registry_address(program_id), PlatformRegistry)


def get_ledger(state: ProgramState, asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> Optional[ReserveLedger]:
    return state.accounts.get(ledger_authority(asset_id, program_id).address, ReserveLedger)


def get_vesting(state: ProgramState, asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> Optional[VestingSchedule]:
    return state.accounts.get(vesting_address(asset_id, program_id), VestingSchedule)


def get_mint(state: ProgramState, asset_id: AssetId, program_id: str = DEFAULT_PROGRAM_ID) -> Optional[MintAccount]:
    return state.accounts.get(mint_address(asset_id, program_id), MintAccount)


def quote_trade(
    state: ProgramState,
    asset_id: AssetId,
    *,
    side: Instruction,
    amount_in: int,
    program_id: str = DEFAULT_PROGRAM_ID,
) -> TradeQuote:
    """Preview a buy or sell at the current curve point without executing it."""
    ledger = state.accounts.load(ledger_authority(asset_id, program_id).address, ReserveLedger)
    registry = state.accounts.load(registry_address(program_id), PlatformRegistry)
    if side is Instruction.BUY:
        return preview_buy(amount_in, ledger.virtual_base_reserve, ledger.virtual_asset_reserve, registry.fee_bps)
    if side is Instruction.SELL:
        return preview_sell(amount_in, ledger.virtual_base_reserve, ledger.virtual_asset_reserve, registry.fee_bps)
    raise ValueError(f"side must be BUY or SELL, got {side}")
