"""
GraphQL 쿼리 정의

The Graph API를 통해 LP 포지션 관리에 필요한 Uniswap V3 데이터를 조회하기 위한 쿼리들.
수수료 계산 (백서 Section 6.3, 6.4)에 필요한 모든 필드 포함.
"""

# Pool 정보 쿼리 (Global State)
POOL_QUERY = """
query Pool($id: ID!) {
  pool(id: $id) {
    id
    feeTier
    tick
    sqrtPrice
    liquidity
    feeGrowthGlobal0X128
    feeGrowthGlobal1X128
    token0 {
      id
      symbol
      decimals
    }
    token1 {
      id
      symbol
      decimals
    }
  }
}
"""

# 특정 틱의 정보 쿼리 (Tick-Indexed State)
# feeGrowthOutside 필드 포함 - 백서 Section 6.3 수수료 계산에 필수
TICK_BY_IDX_QUERY = """
query Ticks($pool: String!, $tickIdx: BigInt!) {
  ticks(where: { poolAddress: $pool, tickIdx: $tickIdx }) {
    tickIdx
    liquidityGross
    liquidityNet
    feeGrowthOutside0X128
    feeGrowthOutside1X128
  }
}
"""

# 포지션 단건 조회 (Position-Indexed State)
POSITION_QUERY = """
query Position($id: ID!) {
  position(id: $id) {
    id
    owner
    liquidity
    tickLower { tickIdx }
    tickUpper { tickIdx }
    feeGrowthInside0LastX128
    feeGrowthInside1LastX128
    pool { id }
  }
}
"""

# 소유자의 포지션 ID 목록 (풀 한정, ID 오름차순)
POSITIONS_BY_OWNER_QUERY = """
query Positions($owner: Bytes!, $pool: String!, $first: Int!) {
  positions(
    where: { owner: $owner, pool: $pool }
    orderBy: id
    orderDirection: asc
    first: $first
  ) {
    id
  }
}
"""
