"""
Sqrt Price Math - sqrtPriceX96 관련 계산

Uniswap V3의 가격은 sqrtPriceX96 형식으로 저장됩니다.
sqrtPriceX96 = sqrt(price) * 2^96

References:
- Uniswap V3 Core: contracts/libraries/SqrtPriceMath.sol
"""

import math

from ..constants import Q192, Q96
from ..errors import InputError


def sqrt_price_x96_to_price(
    sqrt_price_x96: int,
    decimal0: int = 18,
    decimal1: int = 18
) -> float:
    """sqrtPriceX96을 human-readable 가격으로 변환

    가격 = (sqrtPriceX96 / 2^96)^2 × 10^(decimal0 - decimal1)

    Returns:
        가격 (token1/token0 기준, human-readable)
    """
    sqrt_price = sqrt_price_x96 / Q96
    price_raw = sqrt_price ** 2
    return price_raw * 10 ** (decimal0 - decimal1)


def price_to_sqrt_price_x96(
    price: float,
    decimal0: int = 18,
    decimal1: int = 18
) -> int:
    """Human-readable 가격을 sqrtPriceX96으로 변환

    sqrtPriceX96 = sqrt(price × 10^(decimal1 - decimal0)) × 2^96
    """
    if price <= 0:
        raise InputError("가격은 양수여야 합니다")

    adjusted_price = price * 10 ** (decimal1 - decimal0)
    return int(math.sqrt(adjusted_price) * Q96)


def token0_value_in_token1(amount0: int, sqrt_price_x96: int) -> int:
    """token0 수량의 token1 환산 가치 (최소 단위, 내림)

    value = amount0 × sqrtPriceX96² / 2^192
    """
    return amount0 * sqrt_price_x96 * sqrt_price_x96 // Q192


def token1_to_token0_amount(value1: int, sqrt_price_x96: int) -> int:
    """token1 가치에 해당하는 token0 수량 (최소 단위, 내림)

    amount0 = value1 × 2^192 / sqrtPriceX96²
    """
    if sqrt_price_x96 <= 0:
        raise InputError(f"sqrtPriceX96은 양수여야 합니다: {sqrt_price_x96}")
    return value1 * Q192 // (sqrt_price_x96 * sqrt_price_x96)
