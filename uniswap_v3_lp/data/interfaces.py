"""
Collaborator interfaces consumed by the LP controller.

Each external system is a capability described with ``typing.Protocol``:
any object with matching async methods can be plugged in (web3 contract
wrappers, subgraph readers, exchange REST clients, in-memory fakes).

All state-changing calls return only after the transaction / order is final
and raise on failure. The controller never retries them itself.
"""

from decimal import Decimal
from typing import List, Protocol, Sequence, Tuple, Union, runtime_checkable

from .types import (
    CollectParams,
    DecreaseLiquidityParams,
    IncreaseLiquidityParams,
    MintParams,
    MintResult,
    AmountPair,
    PoolInfo,
    Position,
    Slot0,
    TickInfo,
)


@runtime_checkable
class PoolReader(Protocol):
    """Read-only view of a single pool"""

    async def get_slot0(self) -> Slot0:
        ...

    async def get_tick(self, index: int) -> TickInfo:
        ...

    async def get_pool_info(self) -> PoolInfo:
        ...

    async def get_fee_growth_global(self) -> Tuple[int, int]:
        ...


@runtime_checkable
class PositionReader(Protocol):
    """Read-only view of the position manager"""

    async def get_position(self, token_id: int) -> Position:
        ...

    async def list_position_ids(self, owner: str) -> Sequence[int]:
        ...


@runtime_checkable
class PositionManager(PositionReader, Protocol):
    """NonfungiblePositionManager capability"""

    @property
    def address(self) -> str:
        ...

    async def mint(self, params: MintParams, simulate: bool = False) -> MintResult:
        """``simulate=True`` returns the predicted result without committing"""
        ...

    async def increase_liquidity(self, params: IncreaseLiquidityParams) -> AmountPair:
        ...

    async def decrease_liquidity(self, params: DecreaseLiquidityParams) -> AmountPair:
        ...

    async def collect(self, params: CollectParams) -> AmountPair:
        ...

    async def burn(self, token_id: int) -> None:
        ...


@runtime_checkable
class SwapExecutor(Protocol):
    """SwapRouter.exactInputSingle capability"""

    @property
    def address(self) -> str:
        ...

    async def swap_exact_in(
        self,
        token_in: str,
        token_out: str,
        fee: int,
        amount_in: int,
        recipient: str,
    ) -> int:
        ...


@runtime_checkable
class AssetContract(Protocol):
    """ERC20 / WETH9 capability"""

    @property
    def address(self) -> str:
        ...

    async def balance_of(self, owner: str) -> int:
        ...

    async def allowance(self, owner: str, spender: str) -> int:
        ...

    async def approve(self, spender: str, amount: int) -> None:
        ...

    async def transfer(self, recipient: str, amount: int) -> None:
        ...


@runtime_checkable
class HedgeVenue(Protocol):
    """Perpetual swap venue used for the offsetting hedge"""

    async def get_position(self, instrument: str) -> Decimal:
        ...

    async def set_leverage(self, instrument: str, multiplier: Union[int, Decimal]) -> None:
        ...

    async def submit_market_order(self, instrument: str, side: str, size: Decimal) -> None:
        ...


__all__: List[str] = [
    "PoolReader",
    "PositionReader",
    "PositionManager",
    "SwapExecutor",
    "AssetContract",
    "HedgeVenue",
]
