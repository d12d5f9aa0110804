"""
Liquidity Math - 유동성 계산

Uniswap V3의 집중화된 유동성(Concentrated Liquidity) 계산.
특정 가격 범위에서의 토큰 수량과 유동성 간의 변환.

References:
- Uniswap V3 Periphery: contracts/libraries/LiquidityAmounts.sol
- 백서 Section 6.2.1: Concentrated Liquidity

핵심 공식 (현재 가격 √P_c, 범위 [√P_l, √P_u]):
    범위 아래 (√P_c < √P_l): L = Δx * √P_u * √P_l / (√P_u - √P_l)    # token0만
    범위 위   (√P_c > √P_u): L = Δy / (√P_u - √P_l)                   # token1만
    범위 내:                 L = min(Δx * √P_u * √P_c / (√P_u - √P_c),
                                    Δy / (√P_c - √P_l))

모든 결과는 내림 (보유하지 않은 토큰을 초과 약정하지 않도록).
경계값 (√P_c == √P_l 또는 √P_u)은 한쪽 토큰만 사용하는 영역으로 처리하며,
범위 내 공식의 극한값과 동일하다.
"""

from typing import Tuple

from ..constants import Q96, MIN_TICK, MAX_TICK
from ..data.types import AmountPair
from ..errors import InvalidTickRangeError
from .tick_math import get_sqrt_ratio_at_tick


def validate_tick_range(tick_lower: int, tick_upper: int, tick_spacing: int) -> None:
    """틱 범위 사전 검증

    Raises:
        InvalidTickRangeError: tick_lower >= tick_upper, 틱 간격의 배수가 아님,
            또는 틱 도메인을 벗어난 경우
    """
    if tick_lower >= tick_upper:
        raise InvalidTickRangeError(
            f"tick_lower({tick_lower})는 tick_upper({tick_upper})보다 작아야 합니다"
        )
    if tick_lower % tick_spacing != 0 or tick_upper % tick_spacing != 0:
        raise InvalidTickRangeError(
            f"틱은 틱 간격({tick_spacing})의 배수여야 합니다: [{tick_lower}, {tick_upper}]"
        )
    if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
        raise InvalidTickRangeError(
            f"틱 범위가 유효 범위를 벗어났습니다: [{tick_lower}, {tick_upper}]"
        )


def get_amount0_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """유동성에서 amount0 변화량 계산

    공식: Δx = L * (√P_b - √P_a) / (√P_a * √P_b)

    Args:
        sqrt_ratio_a_x96: 하한 sqrtPriceX96
        sqrt_ratio_b_x96: 상한 sqrtPriceX96
        liquidity: 유동성
        round_up: True면 올림, False면 내림

    Returns:
        amount0 (token0 수량, 최소 단위)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    numerator1 = liquidity << 96
    numerator2 = sqrt_ratio_b_x96 - sqrt_ratio_a_x96

    if round_up:
        return _div_rounding_up(
            _mul_div_rounding_up(numerator1, numerator2, sqrt_ratio_b_x96),
            sqrt_ratio_a_x96
        )
    return (numerator1 * numerator2 // sqrt_ratio_b_x96) // sqrt_ratio_a_x96


def get_amount1_delta(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int,
    round_up: bool = True
) -> int:
    """유동성에서 amount1 변화량 계산

    공식: Δy = L * (√P_b - √P_a)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if round_up:
        return _div_rounding_up(
            liquidity * (sqrt_ratio_b_x96 - sqrt_ratio_a_x96),
            Q96
        )
    return liquidity * (sqrt_ratio_b_x96 - sqrt_ratio_a_x96) // Q96


def get_liquidity_for_amount0(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int
) -> int:
    """amount0에서 유동성 계산

    공식: L = Δx * √P_a * √P_b / (√P_b - √P_a)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    # Guard against division by zero (identical sqrt prices)
    if sqrt_ratio_b_x96 <= sqrt_ratio_a_x96:
        return 0

    intermediate = sqrt_ratio_a_x96 * sqrt_ratio_b_x96 // Q96
    return amount0 * intermediate // (sqrt_ratio_b_x96 - sqrt_ratio_a_x96)


def get_liquidity_for_amount1(
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount1: int
) -> int:
    """amount1에서 유동성 계산

    공식: L = Δy / (√P_b - √P_a)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96
    if sqrt_ratio_b_x96 <= sqrt_ratio_a_x96:
        return 0

    return amount1 * Q96 // (sqrt_ratio_b_x96 - sqrt_ratio_a_x96)


def get_liquidity_for_sqrt_ratios(
    sqrt_ratio_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    amount0: int,
    amount1: int
) -> int:
    """토큰 수량에서 유동성 계산 (sqrtPriceX96 입력)

    현재 가격과 범위, 두 토큰 수량이 주어졌을 때
    민트 가능한 최대 유동성을 계산합니다.

    Returns:
        유동성 (범위 내에서는 두 제약 조건 중 작은 값)
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_ratio_x96 <= sqrt_ratio_a_x96:
        # 가격이 범위 아래: token0만 사용
        return get_liquidity_for_amount0(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount0)

    elif sqrt_ratio_x96 < sqrt_ratio_b_x96:
        # 가격이 범위 내: 양쪽 토큰 사용, 작은 값 반환
        liquidity0 = get_liquidity_for_amount0(sqrt_ratio_x96, sqrt_ratio_b_x96, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_x96, amount1)
        return min(liquidity0, liquidity1)

    else:
        # 가격이 범위 위: token1만 사용
        return get_liquidity_for_amount1(sqrt_ratio_a_x96, sqrt_ratio_b_x96, amount1)


def get_amounts_for_sqrt_ratios(
    sqrt_ratio_x96: int,
    sqrt_ratio_a_x96: int,
    sqrt_ratio_b_x96: int,
    liquidity: int
) -> Tuple[int, int]:
    """유동성에서 토큰 수량 계산 (sqrtPriceX96 입력, 내림)

    Returns:
        (amount0, amount1) 튜플
    """
    if sqrt_ratio_a_x96 > sqrt_ratio_b_x96:
        sqrt_ratio_a_x96, sqrt_ratio_b_x96 = sqrt_ratio_b_x96, sqrt_ratio_a_x96

    if sqrt_ratio_x96 <= sqrt_ratio_a_x96:
        # 가격이 범위 아래: token0만 보유
        amount0 = get_amount0_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, False)
        amount1 = 0

    elif sqrt_ratio_x96 < sqrt_ratio_b_x96:
        # 가격이 범위 내: 양쪽 토큰 보유
        amount0 = get_amount0_delta(sqrt_ratio_x96, sqrt_ratio_b_x96, liquidity, False)
        amount1 = get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_x96, liquidity, False)

    else:
        # 가격이 범위 위: token1만 보유
        amount0 = 0
        amount1 = get_amount1_delta(sqrt_ratio_a_x96, sqrt_ratio_b_x96, liquidity, False)

    return amount0, amount1


def get_liquidity_for_amounts(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    amount0: int,
    amount1: int,
    tick_spacing: int
) -> int:
    """틱 범위와 토큰 수량에서 유동성 계산

    Args:
        sqrt_price_x96: 현재 sqrtPriceX96
        tick_lower: 하한 틱 (tick_spacing의 배수)
        tick_upper: 상한 틱 (tick_spacing의 배수)
        amount0: token0 수량 (최소 단위)
        amount1: token1 수량 (최소 단위)
        tick_spacing: 풀의 틱 간격

    Returns:
        유동성 (내림)

    Raises:
        InvalidTickRangeError: 범위가 유효하지 않은 경우 (계산 전에 검증)
    """
    validate_tick_range(tick_lower, tick_upper, tick_spacing)
    return get_liquidity_for_sqrt_ratios(
        sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        amount0,
        amount1,
    )


def get_amount0_for_liquidity(
    liquidity: int,
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    tick_spacing: int
) -> int:
    """유동성에서 token0 수량 계산 (범위 위에서는 0)"""
    return get_amounts_for_liquidity(
        liquidity, sqrt_price_x96, tick_lower, tick_upper, tick_spacing
    ).amount0


def get_amount1_for_liquidity(
    liquidity: int,
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    tick_spacing: int
) -> int:
    """유동성에서 token1 수량 계산 (범위 아래에서는 0)"""
    return get_amounts_for_liquidity(
        liquidity, sqrt_price_x96, tick_lower, tick_upper, tick_spacing
    ).amount1


def get_amounts_for_liquidity(
    liquidity: int,
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    tick_spacing: int
) -> AmountPair:
    """유동성에서 두 토큰 수량 계산 (내림)

    Raises:
        InvalidTickRangeError: 범위가 유효하지 않은 경우
    """
    validate_tick_range(tick_lower, tick_upper, tick_spacing)
    amount0, amount1 = get_amounts_for_sqrt_ratios(
        sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        liquidity,
    )
    return AmountPair(amount0=amount0, amount1=amount1)


def _mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """(a * b) / denominator 올림"""
    result = (a * b) // denominator
    if (a * b) % denominator > 0:
        result += 1
    return result


def _div_rounding_up(numerator: int, denominator: int) -> int:
    """numerator / denominator 올림"""
    result = numerator // denominator
    if numerator % denominator > 0:
        result += 1
    return result
