"""
Rebalance controller for a single concentrated-liquidity position.

Every ``run_cycle()`` call makes exactly one decision:

    NO_POSITION  -> TRANSITIONING -> IN_RANGE   mint a new position
    IN_RANGE     -> IN_RANGE                    collect / compound above thresholds
    OUT_OF_RANGE -> TRANSITIONING -> IN_RANGE   withdraw, collect, mint a replacement

A failure anywhere clears the tracked position. The next cycle rebuilds its view
from the position manager and the wallet balances instead of trusting memory.
"""

import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, List, NamedTuple, Optional, Tuple

from ..constants import UINT128_MAX, UINT256_MAX, FeeAmount
from ..data.interfaces import AssetContract, PoolReader, PositionManager, SwapExecutor
from ..data.types import (
    AmountPair,
    CollectParams,
    CycleResult,
    DecreaseLiquidityParams,
    IncreaseLiquidityParams,
    MintParams,
    Pool,
    PoolInfo,
    Position,
    Slot0,
)
from ..errors import InputError, StateInconsistencyError
from ..math.fee_math import fetch_position_fees
from ..math.liquidity_math import (
    get_amounts_for_liquidity,
    get_liquidity_for_amounts,
    validate_tick_range,
)
from ..math.sqrt_price_math import token0_value_in_token1, token1_to_token0_amount
from ..math.tick_math import round_tick_to_spacing
from ..observer import EventObserver, StructlogObserver
from .hedge_sizer import HedgeSizer
from .range_monitor import RangeMonitor


class PositionState(str, Enum):
    NO_POSITION = "no_position"
    IN_RANGE = "in_range"
    OUT_OF_RANGE = "out_of_range"
    TRANSITIONING = "transitioning"


@dataclass
class ControllerConfig:
    """Tunables consumed by the controller. Built from ``Settings``."""

    owner: str
    tick_half_width: int = 200
    rebalance_tolerance: Decimal = Decimal("0.05")
    swap_fee: int = FeeAmount.LOW
    # None: no amount minimums on mint / decrease
    mint_slippage: Optional[Decimal] = None
    deadline_sec: int = 3600
    approve_threshold_ratio: Decimal = Decimal("0.8")
    collect_min_fee0: Optional[int] = None
    collect_min_fee1: Optional[int] = None
    increase_min_amount0: Optional[int] = None
    increase_min_amount1: Optional[int] = None


class SwapPlan(NamedTuple):
    zero_for_one: bool  # True: sell token0 for token1
    amount_in: int


def compute_target_range(current_tick: int, tick_spacing: int, half_width: int) -> Tuple[int, int]:
    """Spacing-aligned range around ``current_tick`` (both bounds floored).

    When flooring collapses the range the upper bound is moved up one spacing.
    """
    tick_lower = round_tick_to_spacing(current_tick - half_width, tick_spacing)
    tick_upper = round_tick_to_spacing(current_tick + half_width, tick_spacing)
    if tick_upper <= tick_lower:
        tick_upper = tick_lower + tick_spacing
    validate_tick_range(tick_lower, tick_upper, tick_spacing)
    return tick_lower, tick_upper


def plan_rebalance_swap(
    balance0: int,
    balance1: int,
    sqrt_price_x96: int,
    tolerance: Decimal = Decimal("0.05")
) -> Optional[SwapPlan]:
    """Swap that moves the wallet toward a 50/50 value split.

    Values are compared in token1 raw units. Only the side worth more than
    ``target * (1 + tolerance)`` is sold, and only down to the target.
    """
    value0 = token0_value_in_token1(balance0, sqrt_price_x96)
    total = value0 + balance1
    num, den = Decimal(tolerance).as_integer_ratio()

    # value > total / 2 * (1 + num / den), kept in integers
    if value0 * 2 * den > total * (den + num):
        excess_value = (2 * value0 - total) // 2
        amount_in = min(token1_to_token0_amount(excess_value, sqrt_price_x96), balance0)
        if amount_in > 0:
            return SwapPlan(zero_for_one=True, amount_in=amount_in)
    elif balance1 * 2 * den > total * (den + num):
        amount_in = (2 * balance1 - total) // 2
        if amount_in > 0:
            return SwapPlan(zero_for_one=False, amount_in=amount_in)
    return None


class RebalanceController:
    """Keeps one LP position centred on the current price and hedged.

    The controller is the only writer: cycles must not overlap. The tracked
    token id and the last hedge amount are the only state kept between cycles.
    """

    def __init__(
        self,
        pool: Pool,
        pool_reader: PoolReader,
        position_manager: PositionManager,
        swap_executor: SwapExecutor,
        token0_contract: AssetContract,
        token1_contract: AssetContract,
        config: ControllerConfig,
        hedge_sizer: Optional[HedgeSizer] = None,
        observer: Optional[EventObserver] = None,
        clock: Callable[[], float] = time.time,
    ):
        if config.tick_half_width < pool.tick_spacing:
            raise InputError(
                f"tick_half_width ({config.tick_half_width}) must be at least "
                f"the pool tick spacing ({pool.tick_spacing})"
            )
        # contracts may arrive in configuration order; the pool keeps canonical order
        by_token = {}
        for contract in (token0_contract, token1_contract):
            by_token[pool.token_for(contract.address)] = contract
        if len(by_token) != 2:
            raise InputError("token contracts must cover both pool tokens")

        self._pool = pool
        self._pool_reader = pool_reader
        self._position_manager = position_manager
        self._swap_executor = swap_executor
        self._tokens = (by_token[pool.token0], by_token[pool.token1])
        self._config = config
        self._hedge_sizer = hedge_sizer
        self._observer = observer or StructlogObserver(component="rebalance_controller")
        self._clock = clock
        self._range_monitor = RangeMonitor(pool_reader, self._observer)

        self._state = PositionState.NO_POSITION
        self._token_id: Optional[int] = None
        self._step = "idle"
        self.last_hedge_amount: Optional[Decimal] = None

    @property
    def state(self) -> PositionState:
        return self._state

    @property
    def token_id(self) -> Optional[int]:
        return self._token_id

    # ------------------------------------------------------------------
    # once per run
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        """Pool check, approvals, then the zero-liquidity sweep. Call once before cycling."""
        await self.verify_pool()
        await self.ensure_approvals()
        await self.sweep_zero_liquidity_positions()

    async def verify_pool(self) -> PoolInfo:
        """Compare the configured pool with what the pool contract reports.

        Raises:
            StateInconsistencyError: tokens, fee or tick spacing differ
        """
        info = await self._pool_reader.get_pool_info()
        expected = (
            self._pool.token0.address.lower(),
            self._pool.token1.address.lower(),
            int(self._pool.fee),
            self._pool.tick_spacing,
        )
        actual = (info.token0.lower(), info.token1.lower(), int(info.fee), info.tick_spacing)
        if actual != expected:
            raise StateInconsistencyError(
                f"pool reports token0={info.token0} token1={info.token1} fee={info.fee} "
                f"spacing={info.tick_spacing}, configured {expected}"
            )
        return info

    async def ensure_approvals(self) -> List[Tuple[str, str]]:
        """Approve router and position manager for both tokens when allowance is low."""
        num, den = Decimal(self._config.approve_threshold_ratio).as_integer_ratio()
        threshold = UINT256_MAX * num // den
        approved = []
        for contract in self._tokens:
            for spender in (self._swap_executor.address, self._position_manager.address):
                allowance = await contract.allowance(self._config.owner, spender)
                if allowance >= threshold:
                    continue
                await contract.approve(spender, UINT256_MAX)
                approved.append((contract.address, spender))
                self._observer.on_event(
                    "token_approved", token=contract.address, spender=spender
                )
        return approved

    async def sweep_zero_liquidity_positions(self) -> List[int]:
        """Burn positions without liquidity, collecting owed tokens first."""
        burned = []
        for token_id in await self._position_manager.list_position_ids(self._config.owner):
            position = await self._position_manager.get_position(token_id)
            if position.liquidity > 0:
                continue
            if position.has_owed_tokens:
                await self._position_manager.collect(
                    CollectParams(token_id, self._config.owner, UINT128_MAX, UINT128_MAX)
                )
                position = await self._position_manager.get_position(token_id)
                if position.has_owed_tokens:
                    self._observer.on_event(
                        "state_inconsistency",
                        reason="owed tokens left after collect",
                        token_id=token_id,
                        tokens_owed_0=position.tokens_owed_0,
                        tokens_owed_1=position.tokens_owed_1,
                    )
                    continue
            await self._position_manager.burn(token_id)
            burned.append(token_id)
            self._observer.on_event("position_burned", token_id=token_id)
        return burned

    async def close_all_positions(self) -> List[int]:
        """Withdraw every live position of the owner, collect, then sweep."""
        for token_id in await self._position_manager.list_position_ids(self._config.owner):
            position = await self._position_manager.get_position(token_id)
            if position.liquidity > 0:
                await self._withdraw(position)
            await self._collect_all(token_id)
        self._forget_position()
        self._state = PositionState.NO_POSITION
        return await self.sweep_zero_liquidity_positions()

    # ------------------------------------------------------------------
    # cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> CycleResult:
        """Run one decision. Collaborator failures come back as ``ok=False``."""
        self._step = "discover"
        self._observer.on_event(
            "cycle_started", state=self._state.value, token_id=self._token_id
        )
        try:
            return await self._run_cycle()
        except Exception as exc:
            failed_step = self._step
            self._forget_position()
            self._state = PositionState.NO_POSITION
            kind = (
                "state_inconsistency"
                if isinstance(exc, StateInconsistencyError)
                else "cycle_failed"
            )
            self._observer.on_event(
                kind, step=failed_step, error_type=type(exc).__name__, error=str(exc)
            )
            return CycleResult(
                state=self._state.value,
                ok=False,
                action=failed_step,
                error=f"{type(exc).__name__}: {exc}",
            )

    async def _run_cycle(self) -> CycleResult:
        position = await self._discover_position()
        if position is None:
            self._state = PositionState.NO_POSITION
            return await self._open_position(action="mint")

        check = await self._range_monitor.check(position)
        if check.in_range:
            self._state = PositionState.IN_RANGE
            return await self._maintain(position)

        self._state = PositionState.OUT_OF_RANGE
        self._observer.on_event(
            "rebalance_started",
            token_id=position.token_id,
            current_tick=check.current_tick,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
        )
        self._state = PositionState.TRANSITIONING
        await self._withdraw(position)
        await self._collect_all(position.token_id)
        self._forget_position()
        return await self._open_position(action="rebalance", replaced=position.token_id)

    async def _discover_position(self) -> Optional[Position]:
        """Tracked position re-read fresh, else the first live position of the owner."""
        if self._token_id is not None:
            position = await self._position_manager.get_position(self._token_id)
            if position.liquidity > 0:
                return position
            self._observer.on_event(
                "position_missing", token_id=self._token_id, reason="no liquidity"
            )
            self._forget_position()

        live = []
        for token_id in await self._position_manager.list_position_ids(self._config.owner):
            position = await self._position_manager.get_position(token_id)
            if position.liquidity > 0:
                live.append(position)
        if not live:
            return None
        if len(live) > 1:
            self._observer.on_event(
                "extra_positions_ignored",
                managed=live[0].token_id,
                ignored=[p.token_id for p in live[1:]],
            )
        self._token_id = live[0].token_id
        return live[0]

    async def _maintain(self, position: Position) -> CycleResult:
        actions = []
        details = {}
        collected = await self._collect_fees_over_threshold(position)
        if collected is not None:
            actions.append("collect_fees")
            details["collected"] = collected
        added = await self._compound_idle_balances(position)
        if added is not None:
            actions.append("increase_liquidity")
            details["added"] = added
        return CycleResult(
            state=self._state.value,
            token_id=position.token_id,
            action="+".join(actions) or "none",
            details=details,
        )

    async def _open_position(self, action: str, replaced: Optional[int] = None) -> CycleResult:
        self._state = PositionState.TRANSITIONING
        spacing = self._pool.tick_spacing

        self._step = "plan_range"
        slot0 = await self._pool_reader.get_slot0()
        tick_lower, tick_upper = compute_target_range(
            slot0.tick, spacing, self._config.tick_half_width
        )
        balances = await self._balance_tokens(slot0)

        self._step = "mint"
        # our own swap moves the price
        slot0 = await self._pool_reader.get_slot0()
        liquidity = get_liquidity_for_amounts(
            slot0.sqrt_price_x96, tick_lower, tick_upper,
            balances.amount0, balances.amount1, spacing
        )
        if liquidity == 0:
            raise StateInconsistencyError(
                f"balances {balances.amount0}/{balances.amount1} mint no liquidity "
                f"in [{tick_lower}, {tick_upper})"
            )
        expected = get_amounts_for_liquidity(
            liquidity, slot0.sqrt_price_x96, tick_lower, tick_upper, spacing
        )
        mins = self._min_amounts(expected)
        params = MintParams(
            token0=self._pool.token0.address,
            token1=self._pool.token1.address,
            fee=int(self._pool.fee),
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            amount0_desired=balances.amount0,
            amount1_desired=balances.amount1,
            recipient=self._config.owner,
            deadline=self._deadline(),
            amount0_min=mins.amount0,
            amount1_min=mins.amount1,
        )

        self._step = "simulate_mint"
        preview = await self._position_manager.mint(params, simulate=True)
        if preview.liquidity == 0:
            raise StateInconsistencyError(
                f"simulated mint in [{tick_lower}, {tick_upper}) returns no liquidity"
            )
        self._observer.on_event(
            "mint_simulated",
            token_id=preview.token_id,
            liquidity=preview.liquidity,
            amount0=preview.amount0,
            amount1=preview.amount1,
        )

        self._step = "mint"
        result = await self._position_manager.mint(params)
        self._observer.on_event(
            "position_minted",
            token_id=result.token_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=result.liquidity,
            amount0=result.amount0,
            amount1=result.amount1,
            replaced=replaced,
        )

        self._step = "verify_mint"
        position = await self._position_manager.get_position(result.token_id)
        if position.liquidity == 0:
            raise StateInconsistencyError(f"minted position {result.token_id} has no liquidity")
        self._token_id = position.token_id
        self._state = PositionState.IN_RANGE

        details = {
            "tick_lower": position.tick_lower,
            "tick_upper": position.tick_upper,
            "liquidity": position.liquidity,
        }
        if replaced is not None:
            details["replaced"] = replaced

        if self._hedge_sizer is None:
            return CycleResult(
                state=self._state.value, token_id=position.token_id,
                action=action, details=details,
            )

        self._step = "hedge"
        base = self._hedge_sizer.base_token.address.lower()
        base_balance = (
            balances.amount0
            if base == self._pool.token0.address.lower()
            else balances.amount1
        )
        try:
            hedge = await self._hedge_sizer.rebalance_hedge(base_balance)
        except Exception as exc:
            # the position itself is committed and stays tracked
            self._observer.on_event(
                "hedge_failed", token_id=position.token_id,
                error_type=type(exc).__name__, error=str(exc),
            )
            return CycleResult(
                state=self._state.value, token_id=position.token_id, ok=False,
                action=action, error=f"{type(exc).__name__}: {exc}", details=details,
            )
        self.last_hedge_amount = hedge.hedge_amount_readable
        return CycleResult(
            state=self._state.value, token_id=position.token_id,
            action=action, hedge=hedge, details=details,
        )

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------

    async def _balance_tokens(self, slot0: Slot0) -> AmountPair:
        self._step = "read_balances"
        balances = await self._read_balances()
        plan = plan_rebalance_swap(
            balances.amount0, balances.amount1,
            slot0.sqrt_price_x96, self._config.rebalance_tolerance
        )
        if plan is None:
            return balances

        self._step = "swap"
        token_in, token_out = (
            (self._pool.token0, self._pool.token1)
            if plan.zero_for_one
            else (self._pool.token1, self._pool.token0)
        )
        amount_out = await self._swap_executor.swap_exact_in(
            token_in.address, token_out.address,
            self._config.swap_fee, plan.amount_in, self._config.owner,
        )
        self._observer.on_event(
            "tokens_swapped",
            token_in=token_in.symbol,
            token_out=token_out.symbol,
            amount_in=plan.amount_in,
            amount_out=amount_out,
        )
        self._step = "read_balances"
        return await self._read_balances()

    async def _read_balances(self) -> AmountPair:
        token0, token1 = self._tokens
        return AmountPair(
            amount0=await token0.balance_of(self._config.owner),
            amount1=await token1.balance_of(self._config.owner),
        )

    async def _withdraw(self, position: Position) -> AmountPair:
        self._step = "withdraw"
        slot0 = await self._pool_reader.get_slot0()
        expected = get_amounts_for_liquidity(
            position.liquidity, slot0.sqrt_price_x96,
            position.tick_lower, position.tick_upper, self._pool.tick_spacing
        )
        mins = self._min_amounts(expected)
        removed = await self._position_manager.decrease_liquidity(DecreaseLiquidityParams(
            token_id=position.token_id,
            liquidity=position.liquidity,
            deadline=self._deadline(),
            amount0_min=mins.amount0,
            amount1_min=mins.amount1,
        ))
        self._observer.on_event(
            "liquidity_removed",
            token_id=position.token_id,
            liquidity=position.liquidity,
            amount0=removed.amount0,
            amount1=removed.amount1,
        )
        return removed

    async def _collect_all(self, token_id: int) -> AmountPair:
        self._step = "collect"
        collected = await self._position_manager.collect(
            CollectParams(token_id, self._config.owner, UINT128_MAX, UINT128_MAX)
        )
        self._observer.on_event(
            "fees_collected",
            token_id=token_id,
            amount0=collected.amount0,
            amount1=collected.amount1,
        )
        position = await self._position_manager.get_position(token_id)
        if position.has_owed_tokens:
            self._observer.on_event(
                "state_inconsistency",
                reason="owed tokens left after collect",
                token_id=token_id,
                tokens_owed_0=position.tokens_owed_0,
                tokens_owed_1=position.tokens_owed_1,
            )
        return collected

    async def _collect_fees_over_threshold(self, position: Position) -> Optional[AmountPair]:
        min0 = self._config.collect_min_fee0
        min1 = self._config.collect_min_fee1
        if min0 is None and min1 is None:
            return None

        self._step = "accrue_fees"
        fees = await fetch_position_fees(self._pool_reader, position)
        owed0 = position.tokens_owed_0 + fees.uncollected_fees_0
        owed1 = position.tokens_owed_1 + fees.uncollected_fees_1
        if not ((min0 is not None and owed0 >= min0) or (min1 is not None and owed1 >= min1)):
            return None
        return await self._collect_all(position.token_id)

    async def _compound_idle_balances(self, position: Position) -> Optional[AmountPair]:
        min0 = self._config.increase_min_amount0
        min1 = self._config.increase_min_amount1
        if min0 is None or min1 is None:
            return None

        self._step = "read_balances"
        balances = await self._read_balances()
        if balances.amount0 < min0 or balances.amount1 < min1:
            return None

        self._step = "increase_liquidity"
        slot0 = await self._pool_reader.get_slot0()
        liquidity = get_liquidity_for_amounts(
            slot0.sqrt_price_x96, position.tick_lower, position.tick_upper,
            balances.amount0, balances.amount1, self._pool.tick_spacing
        )
        if liquidity == 0:
            return None
        mins = self._min_amounts(get_amounts_for_liquidity(
            liquidity, slot0.sqrt_price_x96,
            position.tick_lower, position.tick_upper, self._pool.tick_spacing
        ))
        added = await self._position_manager.increase_liquidity(IncreaseLiquidityParams(
            token_id=position.token_id,
            amount0_desired=balances.amount0,
            amount1_desired=balances.amount1,
            deadline=self._deadline(),
            amount0_min=mins.amount0,
            amount1_min=mins.amount1,
        ))
        self._observer.on_event(
            "liquidity_increased",
            token_id=position.token_id,
            amount0=added.amount0,
            amount1=added.amount1,
        )
        return added

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _min_amounts(self, expected: AmountPair) -> AmountPair:
        slippage = self._config.mint_slippage
        if slippage is None:
            return AmountPair()
        num, den = (1 - Decimal(slippage)).as_integer_ratio()
        return AmountPair(
            amount0=expected.amount0 * num // den,
            amount1=expected.amount1 * num // den,
        )

    def _deadline(self) -> int:
        return int(self._clock()) + self._config.deadline_sec

    def _forget_position(self) -> None:
        self._token_id = None
