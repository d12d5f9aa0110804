"""
Graph Client 테스트

httpx.MockTransport로 subgraph 응답을 흉내내어 파싱과 재시도를 검증.
"""

import asyncio
import json

import httpx
import pytest

from ..data.graph_client import GraphClient, GraphClientError
from ..data.types import TickInfo
from ..errors import StateInconsistencyError, TransientExternalError

POOL_ID = "0xD0B53D9277642D899DF5C87A3966A349A798F224"

POOL_DATA = {
    "id": POOL_ID.lower(),
    "feeTier": "500",
    "tick": "-196263",
    "sqrtPrice": "4339505179874779489431521",
    "liquidity": "1000",
    "feeGrowthGlobal0X128": "123",
    "feeGrowthGlobal1X128": "456",
    "token0": {"id": "0x4200000000000000000000000000000000000006", "symbol": "WETH", "decimals": "18"},
    "token1": {"id": "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913", "symbol": "USDC", "decimals": "6"},
}


def run(client_factory, handler, coro_fn):
    """MockTransport를 주입한 클라이언트로 코루틴 실행"""
    async def _run():
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = client_factory(http_client)
        try:
            return await coro_fn(client)
        finally:
            await http_client.aclose()
    return asyncio.run(_run())


def make_client(http_client):
    return GraphClient(
        pool_id=POOL_ID, api_key="test-key", chain="base",
        retry_delay=0, http_client=http_client,
    )


def respond(data):
    def handler(request):
        return httpx.Response(200, json={"data": data})
    return handler


class TestInit:
    """GraphClient 생성 테스트"""

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GRAPH_API_KEY", raising=False)
        with pytest.raises(GraphClientError):
            GraphClient(pool_id=POOL_ID)

    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("GRAPH_API_KEY", "env-key")
        client = GraphClient(pool_id=POOL_ID, chain="base")
        assert client.api_key == "env-key"
        asyncio.run(client.aclose())

    def test_unsupported_chain(self):
        with pytest.raises(GraphClientError):
            GraphClient(pool_id=POOL_ID, api_key="k", chain="solana")

    def test_endpoint(self):
        client = GraphClient(pool_id=POOL_ID, api_key="k", chain="BASE")
        assert client.endpoint.startswith("https://gateway.thegraph.com/api/k/subgraphs/id/")
        assert client.pool_id == POOL_ID.lower()
        asyncio.run(client.aclose())

    def test_errors_are_transient(self):
        assert issubclass(GraphClientError, TransientExternalError)


class TestPoolReader:
    """PoolReader 메서드 테스트"""

    def test_get_slot0(self):
        slot0 = run(make_client, respond({"pool": POOL_DATA}), lambda c: c.get_slot0())
        assert slot0.tick == -196263
        assert slot0.sqrt_price_x96 == 4339505179874779489431521

    def test_get_pool_info(self):
        info = run(make_client, respond({"pool": POOL_DATA}), lambda c: c.get_pool_info())
        assert info.fee == 500
        assert info.tick_spacing == 10
        assert info.token0 == POOL_DATA["token0"]["id"]

    def test_get_tokens(self):
        token0, token1 = run(make_client, respond({"pool": POOL_DATA}), lambda c: c.get_tokens())
        assert (token0.symbol, token0.decimals) == ("WETH", 18)
        assert (token1.symbol, token1.decimals) == ("USDC", 6)

    def test_get_fee_growth_global(self):
        growth = run(make_client, respond({"pool": POOL_DATA}), lambda c: c.get_fee_growth_global())
        assert growth == (123, 456)

    def test_missing_pool(self):
        with pytest.raises(StateInconsistencyError):
            run(make_client, respond({"pool": None}), lambda c: c.get_slot0())

    def test_get_tick(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"ticks": [{
                "tickIdx": "-196260",
                "liquidityGross": "10",
                "liquidityNet": "-10",
                "feeGrowthOutside0X128": "77",
                "feeGrowthOutside1X128": "88",
            }]}})

        tick = run(make_client, handler, lambda c: c.get_tick(-196260))
        assert tick == TickInfo(77, 88, 10, -10)
        assert seen[0]["variables"] == {"pool": POOL_ID.lower(), "tickIdx": "-196260"}

    def test_uninitialized_tick(self):
        tick = run(make_client, respond({"ticks": []}), lambda c: c.get_tick(0))
        assert tick == TickInfo()


class TestPositionReader:
    """PositionReader 메서드 테스트"""

    def test_get_position(self):
        data = {"position": {
            "id": "42",
            "owner": "0xabc",
            "liquidity": "5000",
            "tickLower": {"tickIdx": "-196460"},
            "tickUpper": {"tickIdx": "-196060"},
            "feeGrowthInside0LastX128": "9",
            "feeGrowthInside1LastX128": "11",
            "pool": {"id": POOL_ID.lower()},
        }}
        position = run(make_client, respond(data), lambda c: c.get_position(42))
        assert position.token_id == 42
        assert (position.tick_lower, position.tick_upper) == (-196460, -196060)
        assert position.liquidity == 5000
        assert position.fee_growth_inside_1_last_x128 == 11

    def test_missing_position(self):
        with pytest.raises(StateInconsistencyError):
            run(make_client, respond({"position": None}), lambda c: c.get_position(1))

    def test_list_position_ids(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"data": {"positions": [{"id": "3"}, {"id": "17"}]}})

        ids = run(make_client, handler, lambda c: c.list_position_ids("0xABCDEF"))
        assert ids == [3, 17]
        assert seen[0]["variables"]["owner"] == "0xabcdef"
        assert seen[0]["variables"]["pool"] == POOL_ID.lower()

    def test_list_position_ids_numeric_order(self):
        """subgraph가 문자열 순서로 반환해도 숫자 순서로 정렬"""
        data = {"positions": [{"id": "10"}, {"id": "100"}, {"id": "9"}]}
        ids = run(make_client, respond(data), lambda c: c.list_position_ids("0xabc"))
        assert ids == [9, 10, 100]


class TestErrors:
    """재시도 및 오류 처리 테스트"""

    def test_retries_then_succeeds(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            if len(attempts) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"data": {"pool": POOL_DATA}})

        slot0 = run(make_client, handler, lambda c: c.get_slot0())
        assert slot0.tick == -196263
        assert len(attempts) == 3

    def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request):
            attempts.append(1)
            return httpx.Response(500)

        with pytest.raises(GraphClientError):
            run(make_client, handler, lambda c: c.get_slot0())
        assert len(attempts) == 3

    def test_graphql_errors(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "bad query"}]})

        with pytest.raises(GraphClientError, match="bad query"):
            run(make_client, handler, lambda c: c.get_slot0())

    def test_missing_data_field(self):
        def handler(request):
            return httpx.Response(200, json={})

        with pytest.raises(GraphClientError):
            run(make_client, handler, lambda c: c.get_slot0())

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(GraphClientError, match="타임아웃"):
            run(make_client, handler, lambda c: c.get_slot0())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
