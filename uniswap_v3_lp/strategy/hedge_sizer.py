"""
Hedge Sizer - perpetual hedge sizing

After a rebalance the LP holds ``hedge_amount_readable`` units of the base
token. The venue target is that amount times the contract multiplier, signed
short (negative) to offset the LP's long exposure:

    target = -multiplier * hedge_amount_readable
    delta  = round(target - current, 2)

An order is issued only when ``|delta| >= min_delta`` (0.01 by default).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from ..data.interfaces import HedgeVenue
from ..data.types import HedgeOrder, HedgeState, Token
from ..observer import EventObserver, StructlogObserver

DELTA_QUANTUM = Decimal("0.01")

Number = Union[int, float, str, Decimal]


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def hedge_amount_readable(balance: int, decimals: int) -> Decimal:
    """balance / 10^decimals"""
    return Decimal(balance) / (Decimal(10) ** decimals)


def target_notional(amount: Decimal, multiplier: Number) -> Decimal:
    """Short target for a long base-token exposure."""
    return -(amount * _dec(multiplier))


def hedge_delta(target: Decimal, current: Number) -> Decimal:
    """Contracts still needed, rounded to two decimals."""
    return (target - _dec(current)).quantize(DELTA_QUANTUM, rounding=ROUND_HALF_UP)


def plan_order(
    instrument: str,
    delta: Decimal,
    min_delta: Number = DELTA_QUANTUM
) -> Optional[HedgeOrder]:
    """Market order closing ``delta``, or None when it is below ``min_delta``."""
    if abs(delta) < _dec(min_delta):
        return None
    side = "sell" if delta < 0 else "buy"
    return HedgeOrder(
        instrument=instrument,
        side=side,
        size=abs(delta).quantize(DELTA_QUANTUM, rounding=ROUND_HALF_UP),
    )


class HedgeSizer:
    """Sizes and places the offsetting hedge on the venue."""

    def __init__(
        self,
        venue: HedgeVenue,
        base_token: Token,
        instrument: str,
        contract_multiplier: Number = 10,
        leverage: Number = 3,
        min_delta: Number = DELTA_QUANTUM,
        observer: Optional[EventObserver] = None,
    ):
        self._venue = venue
        self.base_token = base_token
        self.instrument = instrument
        self.contract_multiplier = _dec(contract_multiplier)
        self.leverage = leverage
        self.min_delta = _dec(min_delta)
        self._observer = observer or StructlogObserver()

    def size(self, base_balance: int, current: Number = 0) -> HedgeState:
        """Pure sizing for a post-swap balance and the venue's current position."""
        amount = hedge_amount_readable(base_balance, self.base_token.decimals)
        target = target_notional(amount, self.contract_multiplier)
        return HedgeState(
            hedge_amount_readable=amount,
            target=target,
            current=_dec(current),
            delta=hedge_delta(target, current),
        )

    async def rebalance_hedge(self, base_balance: int) -> HedgeState:
        """Bring the venue position to the target for ``base_balance``.

        Reads the venue position fresh on every call.
        """
        amount = hedge_amount_readable(base_balance, self.base_token.decimals)
        if amount <= 0:
            self._observer.on_event(
                "hedge_skipped",
                reason="non-positive hedge amount",
                amount=str(amount),
                token=self.base_token.symbol,
            )
            return HedgeState(hedge_amount_readable=amount)

        current = await self._venue.get_position(self.instrument)
        state = self.size(base_balance, current)
        order = plan_order(self.instrument, state.delta, self.min_delta)
        if order is None:
            self._observer.on_event(
                "hedge_unchanged",
                instrument=self.instrument,
                target=str(state.target),
                current=str(state.current),
            )
            return state

        await self._venue.set_leverage(self.instrument, self.leverage)
        await self._venue.submit_market_order(order.instrument, order.side, order.size)
        state.order_submitted = True
        self._observer.on_event(
            "hedge_order_submitted",
            instrument=order.instrument,
            side=order.side,
            size=str(order.size),
            base_amount=str(amount),
            token=self.base_token.symbol,
        )
        return state
