class ProviderError(Exception):
    """A data provider call failed or returned something unusable."""


class SolanaRpcError(ProviderError):
    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code  # JSON-RPC error code, None for transport failures


class HeliusError(ProviderError):
    pass


class DexScreenerError(ProviderError):
    pass


class AnalysisFailedError(Exception):
    """A mandatory input is missing — no risk level can be produced."""

    def __init__(self, token_address: str, reason: str) -> None:
        super().__init__(f"Analysis failed for {token_address}: {reason}")
        self.token_address = token_address
        self.reason = reason
