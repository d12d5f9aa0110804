"""
Tick Math - Tick ↔ Price 변환

Uniswap V3의 틱 수학 함수들. 온체인 컨트랙트와 동일한 정밀도로 구현.

References:
- Uniswap V3 Core: contracts/libraries/TickMath.sol
- 백서 Section 6.1: Ticks and Tick Spacing

핵심 공식:
    price = 1.0001^tick
    sqrtPrice = 1.0001^(tick / 2)
    tick = floor(log₁.₀₀₀₁(sqrtPrice²))
    sqrtPriceX96 = sqrtPrice * 2^96
"""

import math
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Union

from ..constants import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    TICK_BASE,
    TICK_SPACINGS,
)
from ..data.types import Token
from ..errors import InputError, TickOutOfRangeError

# Decimal 연산 정밀도 (유효 자릿수)
SQRT_PRICE_PRECISION: int = 60


def _check_tick(tick: int) -> None:
    if tick < MIN_TICK or tick > MAX_TICK:
        raise TickOutOfRangeError(
            f"틱이 유효 범위를 벗어났습니다: {tick} (범위: {MIN_TICK} ~ {MAX_TICK})"
        )


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """틱에서 sqrtPriceX96 계산

    Solidity TickMath.getSqrtRatioAtTick()과 동일한 구현.
    온체인 수준의 정밀도를 위해 정수 연산만 사용.

    Args:
        tick: 틱 인덱스 (-887272 ~ 887272)

    Returns:
        sqrtPriceX96 (Q64.96 형식)

    Raises:
        TickOutOfRangeError: 틱이 유효 범위를 벗어난 경우
    """
    _check_tick(tick)

    abs_tick = abs(tick)

    # 매직 넘버를 사용한 비트 연산 (Solidity 구현과 동일)
    ratio = 0x100000000000000000000000000000000 if abs_tick & 0x1 == 0 \
        else 0xfffcb933bd6fad37aa2d162d1a594001

    if abs_tick & 0x2:
        ratio = (ratio * 0xfff97272373d413259a46990580e213a) >> 128
    if abs_tick & 0x4:
        ratio = (ratio * 0xfff2e50f5f656932ef12357cf3c7fdcc) >> 128
    if abs_tick & 0x8:
        ratio = (ratio * 0xffe5caca7e10e4e61c3624eaa0941cd0) >> 128
    if abs_tick & 0x10:
        ratio = (ratio * 0xffcb9843d60f6159c9db58835c926644) >> 128
    if abs_tick & 0x20:
        ratio = (ratio * 0xff973b41fa98c081472e6896dfb254c0) >> 128
    if abs_tick & 0x40:
        ratio = (ratio * 0xff2ea16466c96a3843ec78b326b52861) >> 128
    if abs_tick & 0x80:
        ratio = (ratio * 0xfe5dee046a99a2a811c461f1969c3053) >> 128
    if abs_tick & 0x100:
        ratio = (ratio * 0xfcbe86c7900a88aedcffc83b479aa3a4) >> 128
    if abs_tick & 0x200:
        ratio = (ratio * 0xf987a7253ac413176f2b074cf7815e54) >> 128
    if abs_tick & 0x400:
        ratio = (ratio * 0xf3392b0822b70005940c7a398e4b70f3) >> 128
    if abs_tick & 0x800:
        ratio = (ratio * 0xe7159475a2c29b7443b29c7fa6e889d9) >> 128
    if abs_tick & 0x1000:
        ratio = (ratio * 0xd097f3bdfd2022b8845ad8f792aa5825) >> 128
    if abs_tick & 0x2000:
        ratio = (ratio * 0xa9f746462d870fdf8a65dc1f90e061e5) >> 128
    if abs_tick & 0x4000:
        ratio = (ratio * 0x70d869a156d2a1b890bb3df62baf32f7) >> 128
    if abs_tick & 0x8000:
        ratio = (ratio * 0x31be135f97d08fd981231505542fcfa6) >> 128
    if abs_tick & 0x10000:
        ratio = (ratio * 0x9aa508b5b7a84e1c677de54f3e99bc9) >> 128
    if abs_tick & 0x20000:
        ratio = (ratio * 0x5d6af8dedb81196699c329225ee604) >> 128
    if abs_tick & 0x40000:
        ratio = (ratio * 0x2216e584f5fa1ea926041bedfe98) >> 128
    if abs_tick & 0x80000:
        ratio = (ratio * 0x48a170391f7dc42444e8fa2) >> 128

    if tick > 0:
        ratio = (2**256 - 1) // ratio

    # Q128.128 -> Q64.96 (올림)
    return (ratio >> 32) + (1 if ratio % (1 << 32) != 0 else 0)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """sqrtPriceX96에서 틱 계산

    Solidity TickMath.getTickAtSqrtRatio()과 동일한 구현.
    get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96 을 만족하는 가장 큰 틱을 반환 (floor).

    Args:
        sqrt_price_x96: sqrtPriceX96 (Q64.96 형식)

    Returns:
        틱 인덱스

    Raises:
        TickOutOfRangeError: sqrtPriceX96이 유효 범위를 벗어난 경우
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise TickOutOfRangeError(
            f"sqrtPriceX96이 유효 범위를 벗어났습니다: {sqrt_price_x96}"
        )

    ratio = sqrt_price_x96 << 32

    # 최상위 비트 찾기
    msb = ratio.bit_length() - 1

    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64

    # 로그 계산 (소수부 14비트)
    for i in range(14):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << (63 - i)
        r >>= f

    log_sqrt10001 = log_2 * 255738958999603826347141

    tick_low = (log_sqrt10001 - 3402992956809132418596140100660247210) >> 128
    tick_high = (log_sqrt10001 + 291339464771989622907027621153398088495) >> 128

    if tick_low == tick_high:
        return tick_low

    if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96:
        return tick_high
    return tick_low


def sqrt_price_x96_to_tick(sqrt_price_x96: int) -> int:
    """sqrtPriceX96 → 틱 (floor)

    tick = floor(log(sqrtPrice²) / log(1.0001)), sqrtPrice = sqrtPriceX96 / 2^96.
    MAX_SQRT_RATIO 자체는 MAX_TICK 으로 매핑.
    """
    if sqrt_price_x96 == MAX_SQRT_RATIO:
        return MAX_TICK
    return get_tick_at_sqrt_ratio(sqrt_price_x96)


def tick_to_sqrt_price(tick: int) -> Decimal:
    """틱 → sqrtPrice (실수, Decimal)

    sqrtPrice = 1.0001^(tick / 2). tick에 대해 단조 증가.
    """
    _check_tick(tick)
    with localcontext() as ctx:
        ctx.prec = SQRT_PRICE_PRECISION
        return Decimal(TICK_BASE) ** (Decimal(tick) / 2)


def sqrt_price_to_tick(sqrt_price: Union[Decimal, float]) -> int:
    """sqrtPrice (실수) → 틱 (floor)

    tick_to_sqrt_price(tick) <= sqrt_price 를 만족하는 가장 큰 틱.
    로그 계산의 반올림 오차는 이웃 틱과 직접 비교하여 보정.
    """
    sqrt_price = Decimal(sqrt_price)
    if sqrt_price <= 0:
        raise InputError(f"sqrtPrice는 양수여야 합니다: {sqrt_price}")

    with localcontext() as ctx:
        ctx.prec = SQRT_PRICE_PRECISION
        estimate = (sqrt_price * sqrt_price).ln() / Decimal(TICK_BASE).ln()
        tick = int(estimate.to_integral_value(rounding=ROUND_FLOOR))
        upper_bound = Decimal(TICK_BASE) ** (Decimal(MAX_TICK + 1) / 2)

    if sqrt_price < tick_to_sqrt_price(MIN_TICK) or sqrt_price >= upper_bound:
        raise TickOutOfRangeError(f"sqrtPrice가 유효 범위를 벗어났습니다: {sqrt_price}")
    tick = min(max(tick, MIN_TICK), MAX_TICK)

    while tick < MAX_TICK and tick_to_sqrt_price(tick + 1) <= sqrt_price:
        tick += 1
    while tick > MIN_TICK and tick_to_sqrt_price(tick) > sqrt_price:
        tick -= 1
    return tick


def tick_to_price(tick: int, token0_decimals: int = 18, token1_decimals: int = 6) -> float:
    """틱을 human-readable 가격으로 변환

    price = 1.0001^tick × 10^(token0_decimals - token1_decimals)

    Args:
        tick: 틱 인덱스
        token0_decimals: token0 소수점 자릿수 (예: WETH = 18)
        token1_decimals: token1 소수점 자릿수 (예: USDC = 6)

    Returns:
        가격 (token1/token0, 예: USDC per WETH)
    """
    ratio = 1.0001 ** tick
    return ratio * (10 ** (token0_decimals - token1_decimals))


def price_to_tick(price: float, token0_decimals: int = 18, token1_decimals: int = 6) -> int:
    """Human-readable 가격을 틱으로 변환 (floor)

    tick = floor(log₁.₀₀₀₁(price × 10^(token1_decimals - token0_decimals)))
    """
    if price <= 0:
        raise InputError("가격은 양수여야 합니다")

    ratio = price * (10 ** (token1_decimals - token0_decimals))
    return math.floor(math.log(ratio) / math.log(1.0001))


def adjust_price_for_decimals(raw_price: float, token0: Token, token1: Token) -> float:
    """가격 비율을 두 토큰의 소수점 차이로 스케일링

    price = raw_price × 10^(token1.decimals - token0.decimals)
    """
    return raw_price * 10 ** (token1.decimals - token0.decimals)


def round_tick_to_spacing(tick: int, tick_spacing: int) -> int:
    """틱을 틱 간격의 배수로 내림 (floor)

    tick' = floor(tick / spacing) * spacing. 음수 틱도 -∞ 방향으로 내림.

    Args:
        tick: 내림할 틱
        tick_spacing: 틱 간격 (예: 60 for 0.3% fee)

    Returns:
        tick 이하의 가장 큰 유효 틱
    """
    if tick_spacing <= 0:
        raise InputError(f"틱 간격은 양수여야 합니다: {tick_spacing}")
    return (tick // tick_spacing) * tick_spacing


def get_tick_spacing_for_fee(fee_tier: int) -> int:
    """수수료 티어에 해당하는 틱 간격 반환

    Args:
        fee_tier: 수수료 티어 (500, 3000, 10000)

    Returns:
        틱 간격
    """
    if fee_tier not in TICK_SPACINGS:
        raise InputError(f"지원하지 않는 수수료 티어: {fee_tier}")
    return TICK_SPACINGS[fee_tier]
