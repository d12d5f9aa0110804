"""
Range Monitor - 포지션 범위 판정

현재 틱이 포지션 범위 [tick_lower, tick_upper) 안에 있는지 판정.
상한 틱 자체는 범위 밖으로 취급 (fee_math의 영역 선택과 동일한 규칙).
"""

from dataclasses import dataclass
from typing import Optional

from ..data.interfaces import PoolReader
from ..data.types import Position
from ..observer import EventObserver, StructlogObserver


def is_in_range(position: Position, current_tick: int) -> bool:
    """tick_lower <= current_tick < tick_upper"""
    return position.tick_lower <= current_tick < position.tick_upper


@dataclass(frozen=True)
class RangeCheck:
    """범위 판정 결과 (판정에 사용한 slot0 포함)"""
    in_range: bool
    current_tick: int
    sqrt_price_x96: int
    tick_lower: int
    tick_upper: int


class RangeMonitor:
    """매 호출마다 slot0를 새로 읽어 범위를 판정한다 (캐시하지 않음)."""

    def __init__(self, pool_reader: PoolReader, observer: Optional[EventObserver] = None):
        self._pool_reader = pool_reader
        self._observer = observer or StructlogObserver()

    async def check(self, position: Position) -> RangeCheck:
        slot0 = await self._pool_reader.get_slot0()
        in_range = is_in_range(position, slot0.tick)
        self._observer.on_event(
            "in_range" if in_range else "out_of_range",
            token_id=position.token_id,
            current_tick=slot0.tick,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
        )
        return RangeCheck(
            in_range=in_range,
            current_tick=slot0.tick,
            sqrt_price_x96=slot0.sqrt_price_x96,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
        )
