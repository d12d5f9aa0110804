"""
Uniswap V3 Concentrated Liquidity LP Manager

온체인 수준 정밀도의 집중화 유동성 수학과, 단일 LP 포지션을 현재 가격 주변에
유지하고 무기한 선물로 헤지하는 리밸런싱 컨트롤러.
"""

__version__ = "0.1.0"
__author__ = "Zekiya"

from .constants import Q96, Q128, FeeAmount, TICK_SPACINGS, CHAIN_IDS
from .errors import (
    LpError,
    InputError,
    TickOutOfRangeError,
    InvalidTickRangeError,
    TransientExternalError,
    StateInconsistencyError,
    FatalConfigError,
)
from .observer import EventObserver, StructlogObserver, RecordingObserver
from .strategy import (
    ControllerConfig,
    HedgeSizer,
    PositionState,
    RangeMonitor,
    RebalanceController,
)
