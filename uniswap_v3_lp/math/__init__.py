"""
Math layer for the Uniswap V3 LP manager

온체인 수준 정밀도의 수학 함수들:
- tick_math: Tick ↔ sqrtPrice ↔ Price 변환
- sqrt_price_math: sqrtPriceX96 관련 계산
- liquidity_math: 유동성 ↔ 토큰 수량 (세 가지 가격 영역)
- fee_math: 백서 기반 미수령 수수료 계산
"""

from .tick_math import (
    get_tick_at_sqrt_ratio,
    get_sqrt_ratio_at_tick,
    sqrt_price_x96_to_tick,
    tick_to_sqrt_price,
    sqrt_price_to_tick,
    tick_to_price,
    price_to_tick,
    round_tick_to_spacing,
    adjust_price_for_decimals,
    get_tick_spacing_for_fee,
)
from .sqrt_price_math import (
    sqrt_price_x96_to_price,
    price_to_sqrt_price_x96,
    token0_value_in_token1,
    token1_to_token0_amount,
)
from .liquidity_math import (
    validate_tick_range,
    get_amount0_delta,
    get_amount1_delta,
    get_liquidity_for_amounts,
    get_amounts_for_liquidity,
    get_amount0_for_liquidity,
    get_amount1_for_liquidity,
)
from .fee_math import (
    FeeCalculationResult,
    fee_growth_inside,
    calculate_uncollected_fees,
    calculate_fee_growth_delta,
    compute_position_fees,
    fetch_position_fees,
)
