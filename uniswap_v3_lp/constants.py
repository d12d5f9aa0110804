"""
Uniswap V3 상수 정의

LP 포지션 관리에 필요한 상수들:
- Q96: sqrt price 인코딩에 사용 (2^96)
- Q128: fee growth 인코딩에 사용 (2^128)
- FeeAmount: 지원되는 수수료 티어
- TICK_SPACINGS: 각 수수료 티어별 틱 간격
"""

from enum import IntEnum
from typing import Dict

# Fixed-point 인코딩 상수
Q96: int = 2 ** 96
Q128: int = 2 ** 128
Q192: int = 2 ** 192


class FeeAmount(IntEnum):
    """수수료 티어 (hundredths of a bip)

    500 = 0.05%, 3000 = 0.30%, 10000 = 1.00%
    """
    LOW = 500
    MEDIUM = 3000
    HIGH = 10000


# 각 수수료 티어별 틱 간격
TICK_SPACINGS: Dict[int, int] = {
    FeeAmount.LOW: 10,
    FeeAmount.MEDIUM: 60,
    FeeAmount.HIGH: 200,
}

# 지원되는 체인 ID (subgraph 조회용)
CHAIN_IDS: Dict[str, int] = {
    "ethereum": 0,
    "optimism": 1,
    "arbitrum": 2,
    "polygon": 3,
    "base": 4,
}

# The Graph Subgraph IDs
SUBGRAPH_IDS: Dict[int, str] = {
    0: "5zvR82QoaXYFyDEKLZ9t6v9adgnptxYpKpSbxtgVENFV",  # Ethereum Mainnet
    1: "Cghf4LfVqPiFw6fp6Y5X5Ubc8UpmUhSfJL82zwiBFLaj",  # Optimism
    2: "FbCGRftH4a3yZugY7TnbYgPJVEv2LvMT6oF1fxPe9aJM",  # Arbitrum
    3: "3hCPRGf4z88VC5rsBKU5AA9FBBq5nF3jbKJG7VZCbhjm",  # Polygon
    4: "43Hwfi3dJSoGpyas9VwNoDAv55yjgGrPpNSmbQZArzMG",  # Base
}

# 틱 범위 상수
MIN_TICK: int = -887272
MAX_TICK: int = 887272

# TickMath 경계값 (Q64.96)
MIN_SQRT_RATIO: int = 4295128739
MAX_SQRT_RATIO: int = 1461446703485210103287273052203988822378723970342

# tick 공식의 밑 (price = 1.0001^tick)
TICK_BASE: str = "1.0001"

# uint 최대값
UINT256_MAX: int = 2 ** 256 - 1
UINT128_MAX: int = 2 ** 128 - 1
