"""
Strategy layer: range monitoring, rebalance controller, hedge sizing
"""

from .range_monitor import RangeCheck, RangeMonitor, is_in_range
from .hedge_sizer import (
    HedgeSizer,
    hedge_amount_readable,
    target_notional,
    hedge_delta,
    plan_order,
)
from .controller import (
    ControllerConfig,
    PositionState,
    RebalanceController,
    SwapPlan,
    compute_target_range,
    plan_rebalance_swap,
)
