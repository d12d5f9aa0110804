"""
Fee Math - 백서 기반 수수료 계산

Uniswap V3 백서 Section 6.3, 6.4의 공식을 정확하게 구현.
온체인 컨트랙트와 동일한 정밀도의 미수령 수수료 계산.

References:
- 백서 Section 6.3: Tick-Indexed State (feeGrowthOutside)
- 백서 Section 6.4.1: Position-Indexed State (uncollected fees)

핵심 공식:
    f_a(i) = f_g - f_o(i)  if i_c >= i else f_o(i)     # 틱 i 위 수수료
    f_b(i) = f_o(i)        if i_c >= i else f_g - f_o(i) # 틱 i 아래 수수료
    f_r = f_g - f_b(i_l) - f_a(i_u)                     # 범위 내 수수료
    f_u = l × (f_r(t_1) - f_r(t_0)) / 2^128             # 미수령 수수료

현재 틱 위치에 따라 f_r 은 다음과 같이 정리된다:
    i_c <  i_l:        f_r = f_o(i_l) - f_o(i_u)
    i_c >= i_u:        f_r = f_o(i_u) - f_o(i_l)
    i_l <= i_c < i_u:  f_r = f_g - f_o(i_l) - f_o(i_u)

모든 뺄셈은 uint256 랩어라운드 (mod 2^256). saturating 연산이 아니다.
"""

from typing import Tuple, NamedTuple

from ..constants import Q128
from ..data.types import Position, TickInfo

UINT256_MODULUS: int = 2 ** 256


class FeeCalculationResult(NamedTuple):
    """수수료 계산 결과"""
    uncollected_fees_0: int  # token0 미수령 수수료 (최소 단위)
    uncollected_fees_1: int  # token1 미수령 수수료 (최소 단위)
    fee_growth_inside_0: int  # 현재 범위 내 fee growth token0
    fee_growth_inside_1: int  # 현재 범위 내 fee growth token1


def sub_wrapping(a: int, b: int) -> int:
    """uint256 랩어라운드 뺄셈: (a - b) mod 2^256"""
    return (a - b) % UINT256_MODULUS


def fee_growth_above(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 위에서 발생한 수수료 성장률 (f_a)

    백서 Section 6.3 공식:
        f_a(i) = f_g - f_o(i)  if i_c >= i
        f_a(i) = f_o(i)        if i_c < i
    """
    if current_tick >= tick_idx:
        return sub_wrapping(fee_growth_global, fee_growth_outside)
    return fee_growth_outside


def fee_growth_below(
    tick_idx: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside: int
) -> int:
    """틱 아래에서 발생한 수수료 성장률 (f_b)

    백서 Section 6.3 공식:
        f_b(i) = f_o(i)        if i_c >= i
        f_b(i) = f_g - f_o(i)  if i_c < i
    """
    if current_tick >= tick_idx:
        return fee_growth_outside
    return sub_wrapping(fee_growth_global, fee_growth_outside)


def fee_growth_inside(
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global: int,
    fee_growth_outside_lower: int,
    fee_growth_outside_upper: int
) -> int:
    """범위 내 fee growth 계산 (f_r)

    백서 Section 6.3 공식:
        f_r = f_g - f_b(i_l) - f_a(i_u)

    Args:
        tick_lower: 하한 틱 (i_l)
        tick_upper: 상한 틱 (i_u)
        current_tick: 현재 틱 (i_c)
        fee_growth_global: 전역 fee growth (f_g)
        fee_growth_outside_lower: 하한 틱의 fee growth outside (f_o(i_l))
        fee_growth_outside_upper: 상한 틱의 fee growth outside (f_o(i_u))

    Returns:
        범위 내 fee growth (f_r), mod 2^256
    """
    f_b = fee_growth_below(tick_lower, current_tick, fee_growth_global, fee_growth_outside_lower)
    f_a = fee_growth_above(tick_upper, current_tick, fee_growth_global, fee_growth_outside_upper)

    # Solidity에서는 unchecked 블록에서 자연스럽게 랩어라운드됨
    return sub_wrapping(sub_wrapping(fee_growth_global, f_b), f_a)


def calculate_fee_growth_delta(
    fee_growth_current: int,
    fee_growth_previous: int
) -> int:
    """두 시점 간 fee growth 변화량 계산 (uint256 랩어라운드)"""
    return sub_wrapping(fee_growth_current, fee_growth_previous)


def calculate_uncollected_fees(
    liquidity: int,
    fee_growth_inside_current: int,
    fee_growth_inside_last: int,
    q128: int = Q128
) -> int:
    """미수령 수수료 계산 (f_u)

    백서 Section 6.4.1 공식:
        f_u = l × (f_r(t_1) - f_r(t_0)) / 2^128  (내림)

    Args:
        liquidity: 포지션 유동성 (l)
        fee_growth_inside_current: 현재 범위 내 fee growth (f_r(t_1))
        fee_growth_inside_last: 마지막 체크포인트의 fee growth (f_r(t_0))
        q128: 고정소수점 스케일 (기본 2^128)

    Returns:
        미수령 수수료 (토큰 최소 단위)
    """
    fee_growth_delta = calculate_fee_growth_delta(fee_growth_inside_current, fee_growth_inside_last)
    return liquidity * fee_growth_delta // q128


def calculate_uncollected_fees_both_tokens(
    liquidity: int,
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    fee_growth_global_0: int,
    fee_growth_global_1: int,
    fee_growth_outside_lower_0: int,
    fee_growth_outside_lower_1: int,
    fee_growth_outside_upper_0: int,
    fee_growth_outside_upper_1: int,
    fee_growth_inside_last_0: int,
    fee_growth_inside_last_1: int,
    q128: int = Q128
) -> FeeCalculationResult:
    """두 토큰의 미수령 수수료 계산

    백서 Section 6.3, 6.4의 전체 수수료 계산 파이프라인.

    필수 데이터:
    - Global: f_g,0, f_g,1, i_c
    - Lower tick: f_o,0(i_l), f_o,1(i_l)
    - Upper tick: f_o,0(i_u), f_o,1(i_u)
    - Position: l, f_r,0(t_0), f_r,1(t_0)

    Returns:
        FeeCalculationResult: 미수령 수수료 및 현재 fee growth inside
    """
    # Step 1: 현재 범위 내 fee growth 계산 (f_r(t_1))
    fee_growth_inside_0 = fee_growth_inside(
        tick_lower, tick_upper, current_tick,
        fee_growth_global_0,
        fee_growth_outside_lower_0,
        fee_growth_outside_upper_0
    )

    fee_growth_inside_1 = fee_growth_inside(
        tick_lower, tick_upper, current_tick,
        fee_growth_global_1,
        fee_growth_outside_lower_1,
        fee_growth_outside_upper_1
    )

    # Step 2: 미수령 수수료 계산 (f_u), Q128 디코딩 포함
    return FeeCalculationResult(
        uncollected_fees_0=calculate_uncollected_fees(
            liquidity, fee_growth_inside_0, fee_growth_inside_last_0, q128
        ),
        uncollected_fees_1=calculate_uncollected_fees(
            liquidity, fee_growth_inside_1, fee_growth_inside_last_1, q128
        ),
        fee_growth_inside_0=fee_growth_inside_0,
        fee_growth_inside_1=fee_growth_inside_1
    )


def compute_position_fees(
    position: Position,
    current_tick: int,
    fee_growth_global: Tuple[int, int],
    tick_lower_info: TickInfo,
    tick_upper_info: TickInfo,
    q128: int = Q128
) -> FeeCalculationResult:
    """포지션 스냅샷과 풀 상태로 미수령 수수료 계산

    포지션의 체크포인트(feeGrowthInsideLast)는 변경하지 않는다.
    체크포인트는 position manager에서 실제로 collect 할 때만 갱신된다.
    """
    fee_growth_global_0, fee_growth_global_1 = fee_growth_global
    return calculate_uncollected_fees_both_tokens(
        liquidity=position.liquidity,
        tick_lower=position.tick_lower,
        tick_upper=position.tick_upper,
        current_tick=current_tick,
        fee_growth_global_0=fee_growth_global_0,
        fee_growth_global_1=fee_growth_global_1,
        fee_growth_outside_lower_0=tick_lower_info.fee_growth_outside_0_x128,
        fee_growth_outside_lower_1=tick_lower_info.fee_growth_outside_1_x128,
        fee_growth_outside_upper_0=tick_upper_info.fee_growth_outside_0_x128,
        fee_growth_outside_upper_1=tick_upper_info.fee_growth_outside_1_x128,
        fee_growth_inside_last_0=position.fee_growth_inside_0_last_x128,
        fee_growth_inside_last_1=position.fee_growth_inside_1_last_x128,
        q128=q128,
    )


async def fetch_position_fees(pool_reader, position: Position) -> FeeCalculationResult:
    """풀 상태를 새로 읽어 포지션의 미수령 수수료 계산

    global fee growth, 양쪽 경계 틱, slot0를 모두 같은 호출 안에서 다시 읽는다.
    """
    fee_growth_global = await pool_reader.get_fee_growth_global()
    tick_lower_info = await pool_reader.get_tick(position.tick_lower)
    tick_upper_info = await pool_reader.get_tick(position.tick_upper)
    slot0 = await pool_reader.get_slot0()
    return compute_position_fees(
        position, slot0.tick, fee_growth_global, tick_lower_info, tick_upper_info
    )
