from decimal import Decimal

from pydantic import BaseModel


class DexScreenerToken(BaseModel):
    address: str
    name: str | None = None
    symbol: str | None = None

    model_config = {"extra": "ignore"}


class DexScreenerVolume(BaseModel):
    h1: Decimal | None = None
    h24: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerLiquidity(BaseModel):
    usd: Decimal | None = None
    base: Decimal | None = None
    quote: Decimal | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTxns(BaseModel):
    buys: int | None = None
    sells: int | None = None

    model_config = {"extra": "ignore"}


class DexScreenerTxnsByPeriod(BaseModel):
    h1: DexScreenerTxns | None = None
    h24: DexScreenerTxns | None = None

    model_config = {"extra": "ignore"}


class DexScreenerPriceChange(BaseModel):
    h1: float | None = None
    h24: float | None = None

    model_config = {"extra": "ignore"}


class DexScreenerWebsite(BaseModel):
    url: str = ""

    model_config = {"extra": "ignore"}


class DexScreenerSocial(BaseModel):
    type: str = ""
    url: str = ""

    model_config = {"extra": "ignore"}


class DexScreenerInfo(BaseModel):
    websites: list[DexScreenerWebsite] = []
    socials: list[DexScreenerSocial] = []

    model_config = {"extra": "ignore"}


class DexScreenerPair(BaseModel):
    chainId: str = ""
    dexId: str = ""
    pairAddress: str = ""
    baseToken: DexScreenerToken | None = None
    quoteToken: DexScreenerToken | None = None
    priceUsd: str | None = None
    volume: DexScreenerVolume | None = None
    liquidity: DexScreenerLiquidity | None = None
    priceChange: DexScreenerPriceChange | None = None
    fdv: Decimal | None = None
    marketCap: Decimal | None = None
    pairCreatedAt: int | None = None  # unix ms
    txns: DexScreenerTxnsByPeriod | None = None
    info: DexScreenerInfo | None = None

    model_config = {"extra": "ignore"}

    @property
    def liquidity_usd(self) -> float | None:
        if self.liquidity is None or self.liquidity.usd is None:
            return None
        return float(self.liquidity.usd)
