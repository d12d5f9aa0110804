"""
Configuration for the LP manager

Loads environment variables (and a ``.env`` file) into a validated pydantic model.
Defaults are the Base WETH/USDC 0.3% pool setup.
"""
import os
from decimal import Decimal
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .constants import CHAIN_IDS, TICK_SPACINGS, FeeAmount
from .data.types import Pool, Token
from .errors import FatalConfigError
from .strategy.controller import ControllerConfig


class Settings(BaseModel):
    """LP manager settings. Each field is read from the upper-cased env variable."""

    # Pool
    pool_address: str = Field(default="", description="Pool contract address (subgraph reads)")
    pool_token0_address: str = Field(default="0x4200000000000000000000000000000000000006")
    pool_token0_symbol: str = Field(default="WETH")
    pool_token0_decimals: int = Field(default=18, ge=0)
    pool_token1_address: str = Field(default="0x833589fcd6edb6e08f4c7c32d4f71b54bda02913")
    pool_token1_symbol: str = Field(default="USDC")
    pool_token1_decimals: int = Field(default=6, ge=0)
    pool_fee: int = Field(default=FeeAmount.MEDIUM, description="Pool fee tier (500, 3000, 10000)")
    base_token: str = Field(default="WETH", description="Symbol of the hedged token")

    # Accounts and contracts
    owner_address: str = Field(default="", description="Wallet that owns the positions")
    position_manager_address: str = Field(default="0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1")
    swap_router_address: str = Field(default="0x2626664c2603336e57b271c5c0b26f421741e481")

    # Strategy
    poll_interval_sec: float = Field(default=30, gt=0)
    tick_half_width: int = Field(default=200, gt=0)
    rebalance_tolerance: Decimal = Field(default=Decimal("0.05"), ge=0)
    swap_fee: int = Field(default=FeeAmount.LOW)
    mint_slippage: Optional[Decimal] = Field(default=None, ge=0, lt=1)
    deadline_sec: int = Field(default=3600, gt=0)
    approve_threshold_ratio: Decimal = Field(default=Decimal("0.8"), gt=0, le=1)
    collect_min_fee0: Optional[int] = Field(default=400_000_000_000_000, ge=0)
    collect_min_fee1: Optional[int] = Field(default=1_000_000, ge=0)
    increase_min_amount0: Optional[int] = Field(default=None, ge=0)
    increase_min_amount1: Optional[int] = Field(default=None, ge=0)

    # Hedge
    hedge_enabled: bool = True
    hedge_instrument: str = "ETH-USDT-SWAP"
    hedge_contract_multiplier: Decimal = Field(default=Decimal(10), gt=0)
    hedge_leverage: int = Field(default=3, gt=0)
    hedge_min_delta: Decimal = Field(default=Decimal("0.01"), gt=0)

    # The Graph
    graph_api_key: str = ""
    chain: str = "base"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("pool_fee", "swap_fee")
    @classmethod
    def _known_fee_tier(cls, value: int) -> int:
        if value not in TICK_SPACINGS:
            raise ValueError(f"unsupported fee tier: {value}")
        return value

    @field_validator("chain")
    @classmethod
    def _known_chain(cls, value: str) -> str:
        if value.lower() not in CHAIN_IDS:
            raise ValueError(f"unsupported chain: {value}")
        return value.lower()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _base_token_in_pool(self) -> "Settings":
        if self.base_token not in (self.pool_token0_symbol, self.pool_token1_symbol):
            raise ValueError(
                f"base_token {self.base_token} is neither "
                f"{self.pool_token0_symbol} nor {self.pool_token1_symbol}"
            )
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables (blank values are ignored)."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(name.upper())
            if raw is not None and raw.strip() != "":
                values[name] = raw.strip()
        return cls(**values)

    def pool(self) -> Pool:
        return Pool(
            token0=Token(self.pool_token0_address, self.pool_token0_symbol, self.pool_token0_decimals),
            token1=Token(self.pool_token1_address, self.pool_token1_symbol, self.pool_token1_decimals),
            fee=self.pool_fee,
        )

    def hedge_token(self) -> Token:
        pool = self.pool()
        for token in (pool.token0, pool.token1):
            if token.symbol == self.base_token:
                return token
        raise FatalConfigError(f"base_token {self.base_token} not in pool")

    def to_controller_config(self) -> ControllerConfig:
        return ControllerConfig(
            owner=self.owner_address,
            tick_half_width=self.tick_half_width,
            rebalance_tolerance=self.rebalance_tolerance,
            swap_fee=self.swap_fee,
            mint_slippage=self.mint_slippage,
            deadline_sec=self.deadline_sec,
            approve_threshold_ratio=self.approve_threshold_ratio,
            collect_min_fee0=self.collect_min_fee0,
            collect_min_fee1=self.collect_min_fee1,
            increase_min_amount0=self.increase_min_amount0,
            increase_min_amount1=self.increase_min_amount1,
        )


REQUIRED_FIELDS = ("owner_address", "position_manager_address", "swap_router_address")


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[str] = ".env",
    required: tuple = REQUIRED_FIELDS,
) -> Settings:
    """Load and validate settings.

    Raises:
        FatalConfigError: invalid values, or a required address is missing
    """
    if environ is None and env_file:
        load_dotenv(env_file)
    try:
        settings = Settings.from_env(environ)
    except ValidationError as e:
        raise FatalConfigError(f"invalid configuration: {e}") from e

    missing = [name.upper() for name in required if not getattr(settings, name)]
    if missing:
        raise FatalConfigError(f"missing required settings: {', '.join(missing)}")
    return settings
