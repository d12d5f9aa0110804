#!/usr/bin/env python
"""
Polling harness for the rebalance controller.

``run_forever`` awaits one ``run_cycle()`` at a time and sleeps on a stop
event between cycles, so cycles never overlap. Chain and venue collaborators
are supplied by the embedding process through ``build_controller``.

The command line only needs The Graph:

Usage:
  python -m uniswap_v3_lp.runner status
  python -m uniswap_v3_lp.runner check-config
"""
import argparse
import asyncio
import sys
from typing import Optional

import structlog

from .config import Settings, load_settings
from .data.graph_client import GraphClient
from .data.interfaces import AssetContract, HedgeVenue, PoolReader, PositionManager, SwapExecutor
from .errors import FatalConfigError, LpError
from .math.fee_math import fetch_position_fees
from .math.sqrt_price_math import sqrt_price_x96_to_price
from .math.tick_math import tick_to_price
from .observer import EventObserver, StructlogObserver, configure_logging
from .strategy.controller import RebalanceController
from .strategy.hedge_sizer import HedgeSizer
from .strategy.range_monitor import is_in_range

logger = structlog.get_logger("uniswap_v3_lp.runner")


def build_controller(
    settings: Settings,
    pool_reader: PoolReader,
    position_manager: PositionManager,
    swap_executor: SwapExecutor,
    token0_contract: AssetContract,
    token1_contract: AssetContract,
    venue: Optional[HedgeVenue] = None,
    observer: Optional[EventObserver] = None,
) -> RebalanceController:
    """Wire a controller from settings. No hedge without a venue."""
    observer = observer or StructlogObserver(owner=settings.owner_address)
    hedge_sizer = None
    if venue is not None and settings.hedge_enabled:
        hedge_sizer = HedgeSizer(
            venue,
            base_token=settings.hedge_token(),
            instrument=settings.hedge_instrument,
            contract_multiplier=settings.hedge_contract_multiplier,
            leverage=settings.hedge_leverage,
            min_delta=settings.hedge_min_delta,
            observer=observer,
        )
    return RebalanceController(
        pool=settings.pool(),
        pool_reader=pool_reader,
        position_manager=position_manager,
        swap_executor=swap_executor,
        token0_contract=token0_contract,
        token1_contract=token1_contract,
        config=settings.to_controller_config(),
        hedge_sizer=hedge_sizer,
        observer=observer,
    )


async def run_forever(
    controller: RebalanceController,
    interval_sec: float,
    stop_event: Optional[asyncio.Event] = None,
    prepare: bool = True,
    max_cycles: Optional[int] = None,
) -> int:
    """Cycle until ``stop_event`` is set (or ``max_cycles`` ran). Returns the cycle count.

    ``prepare()`` failures propagate: a run that cannot approve or sweep does not start.
    """
    stop_event = stop_event or asyncio.Event()
    if prepare:
        await controller.prepare()

    cycles = 0
    while not stop_event.is_set():
        result = await controller.run_cycle()
        cycles += 1
        if result.ok:
            logger.info(
                "cycle_completed",
                state=result.state,
                action=result.action,
                token_id=result.token_id,
            )
        else:
            logger.warning(
                "cycle_incomplete",
                state=result.state,
                action=result.action,
                error=result.error,
            )
        if max_cycles is not None and cycles >= max_cycles:
            break

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_sec)
            break  # shutdown was signaled
        except asyncio.TimeoutError:
            pass
    return cycles


async def report_status(settings: Settings) -> Optional[dict]:
    """Read-only view of the managed position through the subgraph."""
    pool = settings.pool()
    async with GraphClient(
        pool_id=settings.pool_address,
        api_key=settings.graph_api_key or None,
        chain=settings.chain,
    ) as client:
        slot0 = await client.get_slot0()
        price = sqrt_price_x96_to_price(
            slot0.sqrt_price_x96, pool.token0.decimals, pool.token1.decimals
        )
        print(f"Pool tick: {slot0.tick}  price: {price:,.4f} {pool.token1.symbol}/{pool.token0.symbol}")

        for token_id in await client.list_position_ids(settings.owner_address):
            position = await client.get_position(token_id)
            if position.liquidity == 0:
                continue
            fees = await fetch_position_fees(client, position)
            status = {
                "token_id": position.token_id,
                "tick_lower": position.tick_lower,
                "tick_upper": position.tick_upper,
                "in_range": is_in_range(position, slot0.tick),
                "fees0": pool.token0.to_readable(fees.uncollected_fees_0),
                "fees1": pool.token1.to_readable(fees.uncollected_fees_1),
            }
            low = tick_to_price(position.tick_lower, pool.token0.decimals, pool.token1.decimals)
            high = tick_to_price(position.tick_upper, pool.token0.decimals, pool.token1.decimals)
            print(f"Position #{position.token_id}: [{position.tick_lower}, {position.tick_upper})"
                  f"  price {low:,.4f} - {high:,.4f}")
            print(f"  In range: {'yes' if status['in_range'] else 'NO'}")
            print(f"  Uncollected fees: {status['fees0']} {pool.token0.symbol}, "
                  f"{status['fees1']} {pool.token1.symbol}")
            return status

        print("No live position")
        return None


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Uniswap V3 LP manager")
    parser.add_argument("--env-file", type=str, default=".env", help="dotenv file to load")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("status", help="Show the managed position from the subgraph")
    subparsers.add_parser("check-config", help="Validate settings and exit")
    args = parser.parse_args(argv)

    try:
        if args.command == "status":
            settings = load_settings(env_file=args.env_file, required=("owner_address", "pool_address"))
        else:
            settings = load_settings(env_file=args.env_file)
    except FatalConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level, settings.json_logs)

    if args.command == "check-config":
        print(f"Pool: {settings.pool_token0_symbol}/{settings.pool_token1_symbol} fee {settings.pool_fee}")
        print(f"Owner: {settings.owner_address}")
        print(f"Hedge: {settings.hedge_instrument if settings.hedge_enabled else 'disabled'}")
        return 0

    try:
        asyncio.run(report_status(settings))
    except LpError as e:
        logger.error("status_failed", error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
