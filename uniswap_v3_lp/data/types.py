"""
Uniswap V3 LP 데이터 타입 정의

풀 상태, 포지션, 컨트랙트 호출 파라미터를 Python dataclass로 정의.
모든 숫자 필드는 온체인 정밀도를 위해 int 타입 사용.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from ..constants import TICK_SPACINGS, FeeAmount
from ..errors import InputError


@dataclass(frozen=True)
class Token:
    """ERC20 토큰 정보 (생성 후 불변)"""
    address: str  # 컨트랙트 주소
    symbol: str
    decimals: int

    def __post_init__(self):
        if self.decimals < 0:
            raise InputError(f"decimals는 0 이상이어야 합니다: {self.decimals}")

    @classmethod
    def from_dict(cls, data: dict) -> "Token":
        return cls(
            address=data["id"],
            symbol=data["symbol"],
            decimals=int(data["decimals"])
        )

    def to_readable(self, amount: int) -> Decimal:
        """최소 단위 → 토큰 단위 (amount / 10^decimals)"""
        return Decimal(amount) / (Decimal(10) ** self.decimals)


@dataclass(frozen=True)
class Pool:
    """Uniswap V3 Pool 식별 정보

    token0.address < token1.address (정규 순서). 역순으로 생성하면 오류 대신 교환.
    """
    token0: Token
    token1: Token
    fee: FeeAmount

    def __post_init__(self):
        object.__setattr__(self, "fee", FeeAmount(self.fee))
        if self.token0.address.lower() > self.token1.address.lower():
            token0, token1 = self.token1, self.token0
            object.__setattr__(self, "token0", token0)
            object.__setattr__(self, "token1", token1)

    @property
    def tick_spacing(self) -> int:
        return TICK_SPACINGS[self.fee]

    def token_for(self, address: str) -> Token:
        """주소로 풀의 토큰 조회"""
        for token in (self.token0, self.token1):
            if token.address.lower() == address.lower():
                return token
        raise InputError(f"풀에 속하지 않는 토큰: {address}")


@dataclass(frozen=True)
class PoolInfo:
    """풀 컨트랙트의 불변 정보 (token0, token1, fee, tickSpacing)"""
    token0: str
    token1: str
    fee: int
    tick_spacing: int


@dataclass(frozen=True)
class Slot0:
    """현재 풀 상태 스냅샷

    - sqrtPriceX96: 현재 √가격 (Q96 인코딩)
    - tick: 현재 틱 인덱스 (i_c)
    """
    sqrt_price_x96: int
    tick: int


@dataclass(frozen=True)
class TickInfo:
    """Tick-Indexed State (Section 6.3, Table 2)

    - feeGrowthOutside0X128: 틱 외부 누적수수료 token0 (f_o,0)
    - feeGrowthOutside1X128: 틱 외부 누적수수료 token1 (f_o,1)
    """
    fee_growth_outside_0_x128: int = 0  # f_o,0
    fee_growth_outside_1_x128: int = 0  # f_o,1
    liquidity_gross: int = 0
    liquidity_net: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "TickInfo":
        return cls(
            fee_growth_outside_0_x128=int(data.get("feeGrowthOutside0X128", 0)),
            fee_growth_outside_1_x128=int(data.get("feeGrowthOutside1X128", 0)),
            liquidity_gross=int(data.get("liquidityGross", 0)),
            liquidity_net=int(data.get("liquidityNet", 0)),
        )


@dataclass(frozen=True)
class Position:
    """Position-Indexed State (Section 6.4, Table 3)

    - liquidity: 포지션의 유동성 (l)
    - tickLower: 하한 틱 (i_l)
    - tickUpper: 상한 틱 (i_u)
    - feeGrowthInside0LastX128: 마지막 업데이트 시점의 범위 내 수수료 token0 (f_r,0(t_0))
    - feeGrowthInside1LastX128: 마지막 업데이트 시점의 범위 내 수수료 token1 (f_r,1(t_0))
    - tokensOwed0 / tokensOwed1: 정산되었지만 아직 수령하지 않은 토큰
    """
    token_id: int
    tick_lower: int  # i_l
    tick_upper: int  # i_u
    liquidity: int  # l
    fee_growth_inside_0_last_x128: int = 0  # f_r,0(t_0)
    fee_growth_inside_1_last_x128: int = 0  # f_r,1(t_0)
    tokens_owed_0: int = 0
    tokens_owed_1: int = 0

    def __post_init__(self):
        if self.tick_lower >= self.tick_upper:
            raise InputError(
                f"tick_lower({self.tick_lower})는 tick_upper({self.tick_upper})보다 작아야 합니다"
            )

    @property
    def has_owed_tokens(self) -> bool:
        return self.tokens_owed_0 > 0 or self.tokens_owed_1 > 0

    @property
    def is_empty(self) -> bool:
        """유동성과 미수령 토큰이 모두 0 (burn 가능)"""
        return self.liquidity == 0 and not self.has_owed_tokens

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        tick_lower = data["tickLower"]
        tick_upper = data["tickUpper"]
        # subgraph는 tickLower/tickUpper를 Tick 엔티티로 반환
        if isinstance(tick_lower, dict):
            tick_lower = tick_lower["tickIdx"]
        if isinstance(tick_upper, dict):
            tick_upper = tick_upper["tickIdx"]
        return cls(
            token_id=int(data["id"]),
            tick_lower=int(tick_lower),
            tick_upper=int(tick_upper),
            liquidity=int(data["liquidity"]),
            fee_growth_inside_0_last_x128=int(data.get("feeGrowthInside0LastX128", 0)),
            fee_growth_inside_1_last_x128=int(data.get("feeGrowthInside1LastX128", 0)),
            tokens_owed_0=int(data.get("tokensOwed0", 0)),
            tokens_owed_1=int(data.get("tokensOwed1", 0)),
        )


@dataclass(frozen=True)
class AmountPair:
    """token0 / token1 수량 (최소 단위)"""
    amount0: int = 0
    amount1: int = 0


@dataclass(frozen=True)
class MintParams:
    """NonfungiblePositionManager.mint 파라미터"""
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    recipient: str
    deadline: int
    amount0_min: int = 0
    amount1_min: int = 0


@dataclass(frozen=True)
class MintResult:
    """mint 결과 (새 포지션 ID 포함)"""
    token_id: int
    liquidity: int
    amount0: int
    amount1: int


@dataclass(frozen=True)
class IncreaseLiquidityParams:
    token_id: int
    amount0_desired: int
    amount1_desired: int
    deadline: int
    amount0_min: int = 0
    amount1_min: int = 0


@dataclass(frozen=True)
class DecreaseLiquidityParams:
    token_id: int
    liquidity: int
    deadline: int
    amount0_min: int = 0
    amount1_min: int = 0


@dataclass(frozen=True)
class CollectParams:
    token_id: int
    recipient: str
    amount0_max: int
    amount1_max: int


@dataclass
class HedgeState:
    """헤지 상태 (매 사이클 재계산, 저장하지 않음)

    - hedge_amount_readable: 리밸런싱 후 기준 토큰 잔고 (토큰 단위)
    - target: 목표 헤지 포지션 (계약 수, 부호 포함)
    - current: 거래소의 현재 포지션
    - delta: target - current (소수점 2자리 반올림)
    """
    hedge_amount_readable: Decimal
    target: Decimal = Decimal(0)
    current: Decimal = Decimal(0)
    delta: Decimal = Decimal(0)
    order_submitted: bool = False


@dataclass
class HedgeOrder:
    """거래소 시장가 주문"""
    instrument: str
    side: str  # "buy" | "sell"
    size: Decimal


@dataclass
class CycleResult:
    """한 번의 컨트롤러 사이클 결과"""
    state: str
    token_id: Optional[int] = None
    ok: bool = True
    action: str = "none"
    error: Optional[str] = None
    hedge: Optional[HedgeState] = None
    details: dict = field(default_factory=dict)
