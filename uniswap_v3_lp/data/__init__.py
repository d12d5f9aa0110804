"""
Data layer for the Uniswap V3 LP manager

데이터 타입, 외부 협력자 인터페이스, The Graph 읽기 전용 클라이언트
"""

from .types import (
    Token,
    Pool,
    PoolInfo,
    Slot0,
    TickInfo,
    Position,
    AmountPair,
    MintParams,
    MintResult,
    IncreaseLiquidityParams,
    DecreaseLiquidityParams,
    CollectParams,
    HedgeState,
    HedgeOrder,
    CycleResult,
)
from .interfaces import (
    PoolReader,
    PositionReader,
    PositionManager,
    SwapExecutor,
    AssetContract,
    HedgeVenue,
)
from .graph_client import GraphClient, GraphClientError
