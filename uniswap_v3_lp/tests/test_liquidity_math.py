"""
Liquidity Math 테스트

유동성 계산 함수들을 테스트합니다.
"""

import pytest

from ..math.liquidity_math import (
    validate_tick_range,
    get_amount0_delta,
    get_amount1_delta,
    get_liquidity_for_amount0,
    get_liquidity_for_amount1,
    get_liquidity_for_sqrt_ratios,
    get_amounts_for_sqrt_ratios,
    get_liquidity_for_amounts,
    get_amounts_for_liquidity,
    get_amount0_for_liquidity,
    get_amount1_for_liquidity,
)
from ..math.tick_math import get_sqrt_ratio_at_tick
from ..errors import InvalidTickRangeError, InputError

SPACING = 10


class TestGetAmountDeltas:
    """get_amount0_delta, get_amount1_delta 테스트"""

    def test_amount0_delta_basic(self):
        """amount0 변화량 기본 테스트"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)
        assert get_amount0_delta(sqrt_a, sqrt_b, 10**18) > 0

    def test_amount1_delta_basic(self):
        """amount1 변화량 기본 테스트"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)
        assert get_amount1_delta(sqrt_a, sqrt_b, 10**18) > 0

    def test_amount_deltas_swap_order(self):
        """sqrt 순서가 바뀌어도 결과 동일"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)
        liquidity = 10**18

        assert get_amount0_delta(sqrt_a, sqrt_b, liquidity) == get_amount0_delta(sqrt_b, sqrt_a, liquidity)

    def test_round_up_vs_down(self):
        """올림은 내림보다 최대 1 큼"""
        sqrt_a = get_sqrt_ratio_at_tick(-60)
        sqrt_b = get_sqrt_ratio_at_tick(120)
        liquidity = 123456789012345

        for fn in (get_amount0_delta, get_amount1_delta):
            up = fn(sqrt_a, sqrt_b, liquidity, True)
            down = fn(sqrt_a, sqrt_b, liquidity, False)
            assert 0 <= up - down <= 1

    def test_amount_deltas_zero_liquidity(self):
        """유동성 0일 때"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)

        assert get_amount0_delta(sqrt_a, sqrt_b, 0) == 0
        assert get_amount1_delta(sqrt_a, sqrt_b, 0) == 0


class TestValidateTickRange:
    """validate_tick_range 테스트 - 계산 전에 거부"""

    def test_valid(self):
        validate_tick_range(-120, 120, 60)

    def test_lower_not_below_upper(self):
        with pytest.raises(InvalidTickRangeError):
            validate_tick_range(120, 120, 60)
        with pytest.raises(InvalidTickRangeError):
            validate_tick_range(180, 120, 60)

    def test_not_spacing_multiple(self):
        with pytest.raises(InvalidTickRangeError):
            validate_tick_range(-125, 120, 60)

    def test_outside_domain(self):
        with pytest.raises(InputError):
            validate_tick_range(-887280, 0, 10)

    def test_checked_before_arithmetic(self):
        """잘못된 범위는 수량과 무관하게 오류"""
        with pytest.raises(InvalidTickRangeError):
            get_liquidity_for_amounts(get_sqrt_ratio_at_tick(0), 100, 0, 10**18, 10**18, SPACING)
        with pytest.raises(InvalidTickRangeError):
            get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(0), 0, 15, SPACING)


class TestGetLiquidityForAmounts:
    """get_liquidity_for_amounts (틱 입력) 테스트 - 세 가지 가격 영역"""

    def test_liquidity_for_amount0(self):
        """amount0에서 유동성 계산"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)
        assert get_liquidity_for_amount0(sqrt_a, sqrt_b, 10**18) > 0

    def test_liquidity_for_amount1(self):
        """amount1에서 유동성 계산"""
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)
        assert get_liquidity_for_amount1(sqrt_a, sqrt_b, 10**18) > 0

    def test_below_range(self):
        """가격이 범위 아래일 때: token0만 사용"""
        sqrt_current = get_sqrt_ratio_at_tick(-200)
        liquidity = get_liquidity_for_amounts(sqrt_current, 0, 100, 10**18, 10**18, SPACING)
        expected = get_liquidity_for_amount0(
            get_sqrt_ratio_at_tick(0), get_sqrt_ratio_at_tick(100), 10**18
        )
        assert liquidity == expected

    def test_above_range(self):
        """가격이 범위 위일 때: token1만 사용"""
        sqrt_current = get_sqrt_ratio_at_tick(200)
        liquidity = get_liquidity_for_amounts(sqrt_current, 0, 100, 10**18, 10**18, SPACING)
        expected = get_liquidity_for_amount1(
            get_sqrt_ratio_at_tick(0), get_sqrt_ratio_at_tick(100), 10**18
        )
        assert liquidity == expected

    def test_in_range(self):
        """가격이 범위 내일 때: 둘 다 사용, 작은 값 반환"""
        sqrt_current = get_sqrt_ratio_at_tick(50)
        sqrt_a = get_sqrt_ratio_at_tick(0)
        sqrt_b = get_sqrt_ratio_at_tick(100)

        liquidity = get_liquidity_for_amounts(sqrt_current, 0, 100, 10**18, 10**18, SPACING)

        liq0 = get_liquidity_for_amount0(sqrt_current, sqrt_b, 10**18)
        liq1 = get_liquidity_for_amount1(sqrt_a, sqrt_current, 10**18)
        assert liquidity == min(liq0, liq1)

    def test_matches_sqrt_ratio_version(self):
        sqrt_current = get_sqrt_ratio_at_tick(37)
        by_ticks = get_liquidity_for_amounts(sqrt_current, -100, 100, 5 * 10**17, 3 * 10**9, SPACING)
        by_ratios = get_liquidity_for_sqrt_ratios(
            sqrt_current, get_sqrt_ratio_at_tick(-100), get_sqrt_ratio_at_tick(100),
            5 * 10**17, 3 * 10**9
        )
        assert by_ticks == by_ratios

    def test_scenario_below_range_token0_only(self):
        """현재 가격이 하한 아래, amount0=10^18, amount1=0

        범위 아래 공식으로 유동성을 계산하고, 같은 가격에서 역산한 amount1은 0
        """
        sqrt_current = get_sqrt_ratio_at_tick(-500)
        liquidity = get_liquidity_for_amounts(sqrt_current, -200, 200, 10**18, 0, SPACING)

        sqrt_lower = get_sqrt_ratio_at_tick(-200)
        sqrt_upper = get_sqrt_ratio_at_tick(200)
        assert liquidity == get_liquidity_for_amount0(sqrt_lower, sqrt_upper, 10**18)
        assert liquidity > 0
        assert get_amount1_for_liquidity(liquidity, sqrt_current, -200, 200, SPACING) == 0
        assert get_amount0_for_liquidity(liquidity, sqrt_current, -200, 200, SPACING) <= 10**18


class TestGetAmountsForLiquidity:
    """get_amounts_for_liquidity 테스트"""

    def test_amounts_below_range(self):
        """가격이 범위 아래일 때: token0만 반환"""
        amounts = get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(-200), 0, 100, SPACING)
        assert amounts.amount0 > 0
        assert amounts.amount1 == 0

    def test_amounts_above_range(self):
        """가격이 범위 위일 때: token1만 반환"""
        amounts = get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(200), 0, 100, SPACING)
        assert amounts.amount0 == 0
        assert amounts.amount1 > 0

    def test_amounts_in_range(self):
        """가격이 범위 내일 때: 둘 다 반환"""
        amounts = get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(50), 0, 100, SPACING)
        assert amounts.amount0 > 0
        assert amounts.amount1 > 0

    def test_at_lower_boundary_is_token0_only(self):
        """현재 가격 == 하한: token0만"""
        amounts = get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(0), 0, 100, SPACING)
        assert amounts.amount0 > 0
        assert amounts.amount1 == 0

    def test_at_upper_boundary_is_token1_only(self):
        """현재 가격 == 상한: token1만"""
        amounts = get_amounts_for_liquidity(10**18, get_sqrt_ratio_at_tick(100), 0, 100, SPACING)
        assert amounts.amount0 == 0
        assert amounts.amount1 > 0

    def test_single_token_helpers(self):
        sqrt_current = get_sqrt_ratio_at_tick(50)
        amounts = get_amounts_for_liquidity(10**18, sqrt_current, 0, 100, SPACING)
        assert get_amount0_for_liquidity(10**18, sqrt_current, 0, 100, SPACING) == amounts.amount0
        assert get_amount1_for_liquidity(10**18, sqrt_current, 0, 100, SPACING) == amounts.amount1

    def test_roundtrip(self):
        """유동성 -> 토큰 -> 유동성 왕복 테스트"""
        sqrt_current = get_sqrt_ratio_at_tick(50)
        original_liquidity = 10**18

        amounts = get_amounts_for_liquidity(original_liquidity, sqrt_current, 0, 100, SPACING)
        result_liquidity = get_liquidity_for_amounts(
            sqrt_current, 0, 100, amounts.amount0, amounts.amount1, SPACING
        )

        # 내림이므로 원래 유동성을 넘지 않음
        assert result_liquidity <= original_liquidity
        assert original_liquidity - result_liquidity < original_liquidity * 0.0001


class TestLiquidityAmountInverse:
    """유동성 계산 후 역산한 수량은 입력을 넘지 않는다"""

    @pytest.mark.parametrize("current_tick,tick_lower,tick_upper", [
        (-1000, -200, 200),      # 범위 아래
        (1000, -200, 200),       # 범위 위
        (0, -200, 200),          # 범위 내
        (-199, -200, 200),
        (199, -200, 200),
        (-196260, -196500, -196000),
    ])
    @pytest.mark.parametrize("amount0,amount1", [
        (10**18, 0),
        (0, 3_000 * 10**6),
        (10**18, 3_000 * 10**6),
        (123456789, 987654321),
    ])
    def test_recomputed_amounts_not_above_inputs(
        self, current_tick, tick_lower, tick_upper, amount0, amount1
    ):
        sqrt_current = get_sqrt_ratio_at_tick(current_tick)
        liquidity = get_liquidity_for_amounts(
            sqrt_current, tick_lower, tick_upper, amount0, amount1, SPACING
        )
        amounts = get_amounts_for_liquidity(
            liquidity, sqrt_current, tick_lower, tick_upper, SPACING
        )
        assert amounts.amount0 <= amount0
        assert amounts.amount1 <= amount1


class TestSqrtRatioVersions:
    """get_amounts_for_sqrt_ratios 는 튜플 반환"""

    def test_tuple_result(self):
        amount0, amount1 = get_amounts_for_sqrt_ratios(
            get_sqrt_ratio_at_tick(50), get_sqrt_ratio_at_tick(0), get_sqrt_ratio_at_tick(100), 10**18
        )
        assert amount0 > 0 and amount1 > 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
