"""
Tick Math 테스트

tick_math.py의 함수들을 테스트합니다.
온체인 값과 비교하여 정확도를 검증합니다.
"""

import pytest
from decimal import Decimal

from ..constants import MIN_TICK, MAX_TICK, MIN_SQRT_RATIO, MAX_SQRT_RATIO, Q96
from ..data.types import Token
from ..errors import InputError, TickOutOfRangeError
from ..math.tick_math import (
    get_sqrt_ratio_at_tick,
    get_tick_at_sqrt_ratio,
    sqrt_price_x96_to_tick,
    tick_to_sqrt_price,
    sqrt_price_to_tick,
    tick_to_price,
    price_to_tick,
    round_tick_to_spacing,
    adjust_price_for_decimals,
    get_tick_spacing_for_fee,
)

SAMPLE_TICKS = [
    MIN_TICK, MIN_TICK + 1, -500000, -196260, -50000, -1000, -1,
    0, 1, 1000, 50000, 196260, 500000, MAX_TICK - 1, MAX_TICK,
]


class TestGetSqrtRatioAtTick:
    """get_sqrt_ratio_at_tick 테스트"""

    def test_min_tick(self):
        """최소 틱에서의 sqrtPrice"""
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO

    def test_max_tick(self):
        """최대 틱에서의 sqrtPrice"""
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_tick_0(self):
        """틱 0에서의 sqrtPrice (price = 1)"""
        assert get_sqrt_ratio_at_tick(0) == Q96

    def test_positive_tick(self):
        """양수 틱 테스트"""
        assert get_sqrt_ratio_at_tick(100) > Q96

    def test_negative_tick(self):
        """음수 틱 테스트"""
        assert get_sqrt_ratio_at_tick(-100) < Q96

    def test_invalid_tick_too_low(self):
        """유효 범위를 벗어난 틱 (너무 낮음)"""
        with pytest.raises(TickOutOfRangeError):
            get_sqrt_ratio_at_tick(MIN_TICK - 1)

    def test_invalid_tick_too_high(self):
        """유효 범위를 벗어난 틱 (너무 높음) - ValueError로도 잡힘"""
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)

    def test_strictly_increasing(self):
        """틱에 대해 단조 증가"""
        values = [get_sqrt_ratio_at_tick(t) for t in SAMPLE_TICKS]
        assert all(a < b for a, b in zip(values, values[1:]))


class TestGetTickAtSqrtRatio:
    """get_tick_at_sqrt_ratio / sqrt_price_x96_to_tick 테스트"""

    def test_min_sqrt_ratio(self):
        """최소 sqrtRatio에서의 틱"""
        assert get_tick_at_sqrt_ratio(MIN_SQRT_RATIO) == MIN_TICK

    def test_sqrt_ratio_at_tick_0(self):
        """sqrtPrice 2^96에서의 틱"""
        assert get_tick_at_sqrt_ratio(Q96) == 0

    def test_roundtrip(self):
        """틱 -> sqrtPriceX96 -> 틱 왕복 (전 구간 샘플)"""
        for tick in SAMPLE_TICKS:
            assert sqrt_price_x96_to_tick(get_sqrt_ratio_at_tick(tick)) == tick

    def test_floor_not_round(self):
        """틱 사이의 가격은 아래 틱으로 내림"""
        upper = get_sqrt_ratio_at_tick(1001)
        assert sqrt_price_x96_to_tick(upper - 1) == 1000

        negative_upper = get_sqrt_ratio_at_tick(-999)
        assert sqrt_price_x96_to_tick(negative_upper - 1) == -1000

    def test_max_sqrt_ratio_maps_to_max_tick(self):
        assert sqrt_price_x96_to_tick(MAX_SQRT_RATIO) == MAX_TICK

    def test_invalid_sqrt_ratio_too_low(self):
        """유효 범위를 벗어난 sqrtRatio (너무 낮음)"""
        with pytest.raises(TickOutOfRangeError):
            get_tick_at_sqrt_ratio(MIN_SQRT_RATIO - 1)

    def test_invalid_sqrt_ratio_too_high(self):
        with pytest.raises(TickOutOfRangeError):
            sqrt_price_x96_to_tick(MAX_SQRT_RATIO + 1)


class TestDecimalSqrtPrice:
    """tick_to_sqrt_price / sqrt_price_to_tick (Decimal) 테스트"""

    def test_tick_0(self):
        assert tick_to_sqrt_price(0) == Decimal(1)

    def test_roundtrip(self):
        for tick in SAMPLE_TICKS:
            assert sqrt_price_to_tick(tick_to_sqrt_price(tick)) == tick

    def test_monotonic(self):
        values = [tick_to_sqrt_price(t) for t in range(-20, 21)]
        assert all(a < b for a, b in zip(values, values[1:]))

    def test_floor_between_ticks(self):
        """두 틱 사이의 값은 아래 틱"""
        low = tick_to_sqrt_price(-7)
        high = tick_to_sqrt_price(-6)
        assert sqrt_price_to_tick((low + high) / 2) == -7

    def test_out_of_range_tick(self):
        with pytest.raises(TickOutOfRangeError):
            tick_to_sqrt_price(MAX_TICK + 1)

    def test_out_of_range_sqrt_price_not_clamped(self):
        """범위 밖 sqrtPrice는 클램프하지 않고 오류"""
        with pytest.raises(TickOutOfRangeError):
            sqrt_price_to_tick(tick_to_sqrt_price(MIN_TICK) / 2)
        with pytest.raises(TickOutOfRangeError):
            sqrt_price_to_tick(tick_to_sqrt_price(MAX_TICK) * 2)

    def test_non_positive_sqrt_price(self):
        with pytest.raises(InputError):
            sqrt_price_to_tick(0)


class TestTickToPrice:
    """tick_to_price 테스트"""

    def test_tick_0_same_decimals(self):
        """틱 0, 동일 소수점 (가격 = 1)"""
        assert abs(tick_to_price(0, 18, 18) - 1.0) < 1e-10

    def test_tick_0_different_decimals(self):
        """틱 0, 다른 소수점 (USDC(6) / WETH(18) 예시)"""
        # price = 1.0001^0 × 10^(6-18)
        assert abs(tick_to_price(0, 6, 18) - 1e-12) < 1e-20

    def test_weth_usdc(self):
        """WETH(18)/USDC(6): 틱 -196260 ≈ 3000 USDC"""
        price = tick_to_price(-196260, 18, 6)
        assert 2900 < price < 3050

    def test_positive_tick(self):
        """양수 틱 테스트"""
        expected = 1.0001 ** 1000
        assert abs(tick_to_price(1000, 18, 18) - expected) / expected < 1e-6

    def test_negative_tick(self):
        """음수 틱 테스트"""
        expected = 1.0001 ** (-1000)
        assert abs(tick_to_price(-1000, 18, 18) - expected) / expected < 1e-6


class TestPriceToTick:
    """price_to_tick 테스트"""

    def test_price_1_same_decimals(self):
        """가격 1, 동일 소수점"""
        assert price_to_tick(1.0, 18, 18) == 0

    def test_roundtrip(self):
        """가격 -> 틱 -> 가격 왕복 테스트"""
        for price in [0.001, 0.1, 1.0, 10.0, 1000.0]:
            tick = price_to_tick(price, 18, 18)
            result_price = tick_to_price(tick, 18, 18)
            # floor 이므로 결과 가격은 한 틱(0.01%) 이내로 작거나 같음
            assert result_price <= price * (1 + 1e-9)
            assert (price - result_price) / price < 2e-4

    def test_invalid_price_zero(self):
        """가격 0은 유효하지 않음"""
        with pytest.raises(InputError):
            price_to_tick(0, 18, 18)

    def test_invalid_price_negative(self):
        """음수 가격은 유효하지 않음"""
        with pytest.raises(ValueError):
            price_to_tick(-1.0, 18, 18)


class TestAdjustPriceForDecimals:
    """adjust_price_for_decimals 테스트"""

    def test_weth_usdc(self):
        weth = Token("0x4200000000000000000000000000000000000006", "WETH", 18)
        usdc = Token("0x833589fcd6edb6e08f4c7c32d4f71b54bda02913", "USDC", 6)
        # raw × 10^(6 - 18)
        assert adjust_price_for_decimals(3e15, weth, usdc) == pytest.approx(3000.0)

    def test_same_decimals(self):
        a = Token("0x1", "A", 18)
        b = Token("0x2", "B", 18)
        assert adjust_price_for_decimals(1.5, a, b) == 1.5


class TestRoundTickToSpacing:
    """round_tick_to_spacing 테스트

    틱 간격의 배수로 내림(floor) 합니다. 음수 틱은 -∞ 방향.
    """

    def test_already_aligned(self):
        """이미 정렬된 틱"""
        assert round_tick_to_spacing(60, 60) == 60
        assert round_tick_to_spacing(120, 60) == 120
        assert round_tick_to_spacing(-60, 60) == -60
        assert round_tick_to_spacing(0, 60) == 0

    def test_floor_positive(self):
        """양수 틱 - 아래 배수로"""
        assert round_tick_to_spacing(65, 60) == 60
        assert round_tick_to_spacing(119, 60) == 60
        assert round_tick_to_spacing(15, 10) == 10

    def test_floor_negative(self):
        """음수 틱 - 더 작은 배수로 (0 방향이 아님)"""
        assert round_tick_to_spacing(-1, 60) == -60
        assert round_tick_to_spacing(-65, 60) == -120
        assert round_tick_to_spacing(-15, 10) == -20

    def test_scenario_range_around_tick_1000(self):
        """틱 1000, 간격 10, ±200 → [800, 1200)"""
        assert round_tick_to_spacing(1000 - 200, 10) == 800
        assert round_tick_to_spacing(1000 + 200, 10) == 1200

    def test_invalid_spacing(self):
        with pytest.raises(InputError):
            round_tick_to_spacing(100, 0)


class TestTickSpacingForFee:

    def test_known_tiers(self):
        assert get_tick_spacing_for_fee(500) == 10
        assert get_tick_spacing_for_fee(3000) == 60
        assert get_tick_spacing_for_fee(10000) == 200

    def test_unknown_tier(self):
        with pytest.raises(InputError):
            get_tick_spacing_for_fee(123)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
