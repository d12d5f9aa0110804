"""
The Graph API 클라이언트

Uniswap V3 Subgraph에서 단일 풀과 그 풀의 포지션을 조회하는 읽기 전용 클라이언트.
PoolReader / PositionReader 인터페이스를 구현한다.

subgraph 데이터는 체인보다 수 블록 늦을 수 있으므로, 상태 변경 직후의 재확인에는
RPC 기반 reader를 사용하는 것이 안전하다.
"""

import asyncio
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..constants import CHAIN_IDS, SUBGRAPH_IDS, TICK_SPACINGS
from ..errors import StateInconsistencyError, TransientExternalError
from . import queries
from .types import PoolInfo, Position, Slot0, TickInfo, Token


class GraphClientError(TransientExternalError):
    """Graph API 오류"""
    pass


class GraphClient:
    """The Graph API 클라이언트 (단일 풀)

    사용법:
        async with GraphClient(pool_id="0x...", api_key="...", chain="base") as client:
            slot0 = await client.get_slot0()
            tick = await client.get_tick(-196260)
    """

    def __init__(
        self,
        pool_id: str,
        api_key: Optional[str] = None,
        chain: str = "ethereum",
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            pool_id: Pool 컨트랙트 주소
            api_key: The Graph API 키. None이면 환경변수 GRAPH_API_KEY에서 로드
            chain: 체인 이름 (ethereum, optimism, arbitrum, polygon, base)
            timeout: 요청 타임아웃 (초)
            max_retries: 최대 재시도 횟수
            retry_delay: 재시도 기본 대기 시간 (초, 시도마다 선형 증가)
            http_client: 주입할 httpx.AsyncClient (테스트용)
        """
        self.api_key = api_key or os.getenv("GRAPH_API_KEY")
        if not self.api_key:
            raise GraphClientError(
                "API 키가 필요합니다. GRAPH_API_KEY 환경변수를 설정하거나 "
                "api_key 파라미터로 전달하세요."
            )

        chain_lower = chain.lower()
        if chain_lower not in CHAIN_IDS:
            raise GraphClientError(
                f"지원하지 않는 체인: {chain}. "
                f"지원 체인: {', '.join(CHAIN_IDS.keys())}"
            )

        self.pool_id = pool_id.lower()
        self.subgraph_id = SUBGRAPH_IDS[CHAIN_IDS[chain_lower]]
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @property
    def endpoint(self) -> str:
        """GraphQL 엔드포인트 URL"""
        return f"https://gateway.thegraph.com/api/{self.api_key}/subgraphs/id/{self.subgraph_id}"

    async def __aenter__(self) -> "GraphClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _execute_query(
        self,
        query: str,
        variables: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """GraphQL 쿼리 실행

        Raises:
            GraphClientError: 재시도 후에도 API 오류가 발생한 경우
        """
        payload: Dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        last_error: Optional[GraphClientError] = None
        for attempt in range(self.max_retries):
            try:
                response = await self._client.post(
                    self.endpoint,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                data = response.json()

                if "errors" in data:
                    error_messages = [e.get("message", str(e)) for e in data["errors"]]
                    raise GraphClientError(f"GraphQL 오류: {'; '.join(error_messages)}")

                if "data" not in data:
                    raise GraphClientError("응답에 'data' 필드가 없습니다")

                return data["data"]

            except httpx.TimeoutException:
                last_error = GraphClientError("요청 타임아웃")
            except httpx.HTTPError as e:
                last_error = GraphClientError(f"네트워크 오류: {e}")
            except GraphClientError as e:
                last_error = e

            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (attempt + 1))

        raise last_error

    async def _get_pool_data(self) -> Dict[str, Any]:
        data = await self._execute_query(queries.POOL_QUERY, {"id": self.pool_id})
        pool_data = data.get("pool")
        if not pool_data:
            raise StateInconsistencyError(f"Pool을 찾을 수 없습니다: {self.pool_id}")
        return pool_data

    # ------------------------------------------------------------------
    # PoolReader
    # ------------------------------------------------------------------

    async def get_slot0(self) -> Slot0:
        pool_data = await self._get_pool_data()
        return Slot0(
            sqrt_price_x96=int(pool_data["sqrtPrice"]),
            tick=int(pool_data["tick"]),
        )

    async def get_tick(self, index: int) -> TickInfo:
        """틱 정보 조회. 초기화되지 않은 틱은 0으로 채운 TickInfo 반환"""
        data = await self._execute_query(
            queries.TICK_BY_IDX_QUERY,
            {"pool": self.pool_id, "tickIdx": str(index)}
        )
        ticks = data.get("ticks", [])
        if not ticks:
            return TickInfo()
        return TickInfo.from_dict(ticks[0])

    async def get_pool_info(self) -> PoolInfo:
        pool_data = await self._get_pool_data()
        fee = int(pool_data["feeTier"])
        return PoolInfo(
            token0=pool_data["token0"]["id"],
            token1=pool_data["token1"]["id"],
            fee=fee,
            tick_spacing=TICK_SPACINGS[fee],
        )

    async def get_tokens(self) -> Tuple[Token, Token]:
        pool_data = await self._get_pool_data()
        return Token.from_dict(pool_data["token0"]), Token.from_dict(pool_data["token1"])

    async def get_fee_growth_global(self) -> Tuple[int, int]:
        pool_data = await self._get_pool_data()
        return (
            int(pool_data.get("feeGrowthGlobal0X128", 0)),
            int(pool_data.get("feeGrowthGlobal1X128", 0)),
        )

    # ------------------------------------------------------------------
    # PositionReader
    # ------------------------------------------------------------------

    async def get_position(self, token_id: int) -> Position:
        data = await self._execute_query(queries.POSITION_QUERY, {"id": str(token_id)})
        position_data = data.get("position")
        if not position_data:
            raise StateInconsistencyError(f"포지션을 찾을 수 없습니다: {token_id}")
        return Position.from_dict(position_data)

    async def list_position_ids(self, owner: str, first: int = 1000) -> List[int]:
        data = await self._execute_query(
            queries.POSITIONS_BY_OWNER_QUERY,
            {"owner": owner.lower(), "pool": self.pool_id, "first": first}
        )
        # subgraph orderBy id는 문자열 정렬 ("10" < "9") 이므로 숫자로 다시 정렬
        return sorted(int(p["id"]) for p in data.get("positions", []))
