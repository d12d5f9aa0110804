"""
Error taxonomy for the LP manager.

- InputError: bad tick / range input, rejected before any external call.
- TransientExternalError: RPC, subgraph or venue failure; retried on the next cycle.
- StateInconsistencyError: collaborator state disagrees with what the controller expected.
- FatalConfigError: missing addresses or credentials at startup.
"""


class LpError(Exception):
    """Base class for all errors raised by this package"""
    pass


class InputError(LpError, ValueError):
    """잘못된 입력 (틱 범위, 틱 간격 등)"""
    pass


class TickOutOfRangeError(InputError):
    """틱 또는 sqrtPriceX96이 표현 가능한 범위를 벗어난 경우"""
    pass


class InvalidTickRangeError(InputError):
    """tick_lower >= tick_upper 이거나 틱 간격의 배수가 아닌 경우"""
    pass


class TransientExternalError(LpError):
    """External call failed or timed out; the outcome must be re-verified."""
    pass


class StateInconsistencyError(LpError):
    """Collaborator state does not match what the controller expected."""
    pass


class FatalConfigError(LpError):
    """Required configuration is missing or invalid."""
    pass
