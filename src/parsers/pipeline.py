"""Token risk analysis pipeline — fan-out extraction, then one pure scoring pass.

Stages:
1. Mint account (mandatory: missing => AnalysisFailedError)
2. {largest holders, market pairs, SOL price}            concurrently
3. Snapshot, holder classification, creator resolution
4. {bundle detection, creator profile, dev activity}     concurrently
5. {wash trading, bundle quality}                        concurrently, need 4
6. Risk engine -> RiskAssessment -> reputation store

Every fetch in 2-5 is independently fallible: a failure or timeout is logged
and becomes an absent signal, never an aborted analysis.
"""

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

from loguru import logger

from config.settings import Settings, settings
from src.models.risk import (
    BundleEvidence,
    NarrativeBaseline,
    RiskAssessment,
    TradeCounts,
)
from src.parsers.bundle_detector import detect_bundles
from src.parsers.bundle_quality import assess_bundle_quality
from src.parsers.creator_profiler import build_creator_profile
from src.parsers.dev_activity import analyze_dev_activity
from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.exceptions import AnalysisFailedError, ProviderError
from src.parsers.helius.client import HeliusClient
from src.parsers.holder_classifier import classify_holders, guess_creator
from src.parsers.reputation_store import ReputationStore
from src.parsers.risk_engine import RiskEvidence, score_risk
from src.parsers.slot_locator import find_token_creator
from src.parsers.sol_price import SolPriceCache, sol_price_cache
from src.parsers.solana_rpc.client import SolanaRpcClient
from src.parsers.token_snapshot import build_token_snapshot, estimate_onchain_activity
from src.parsers.wash_trading import detect_wash_trading

T = TypeVar("T")


class TokenRiskAnalyzer:
    """Runs one analysis per call; holds only provider clients and config."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        dexscreener: DexScreenerClient,
        *,
        helius: HeliusClient | None = None,
        store: ReputationStore | None = None,
        price_cache: SolPriceCache = sol_price_cache,
        config: Settings = settings,
    ) -> None:
        self._rpc = rpc
        self._dex = dexscreener
        self._helius = helius
        self._store = store
        self._price_cache = price_cache
        self._config = config

    async def close(self) -> None:
        await self._rpc.close()
        await self._dex.close()
        if self._helius is not None:
            await self._helius.close()

    async def _bounded(self, coro: Awaitable[T]) -> T:
        return await asyncio.wait_for(coro, timeout=self._config.fetch_timeout_sec)

    @staticmethod
    def _sanitize(name: str, value: object, default: object) -> object:
        """Replace a leaked exception from gather() with the signal's absent value."""
        if isinstance(value, Exception):
            logger.warning(f"[ANALYZE] {name} failed: {type(value).__name__}: {value}")
            return default
        return value

    async def analyze(
        self,
        mint: str,
        baseline: NarrativeBaseline | None = None,
        *,
        force_refresh: bool = False,
    ) -> RiskAssessment:
        """Assess one token. Raises AnalysisFailedError if the mint cannot be read."""
        # Baseline-seeded runs are never served from cache
        if self._store is not None and not force_refresh and baseline is None:
            cached = await self._store.get_assessment(mint)
            if cached is not None:
                logger.info(f"[ANALYZE] {mint[:12]}: cached {cached.level.value} ({cached.score})")
                return cached

        try:
            assessment = await asyncio.wait_for(
                self._analyze(mint, baseline),
                timeout=self._config.analysis_timeout_sec,
            )
        except TimeoutError as e:
            raise AnalysisFailedError(
                mint, f"timed out after {self._config.analysis_timeout_sec:.0f}s"
            ) from e

        if self._store is not None:
            await self._store.set_assessment(assessment)
        return assessment

    async def _analyze(self, mint: str, baseline: NarrativeBaseline | None) -> RiskAssessment:
        cfg = self._config
        started = time.monotonic()

        try:
            mint_info = await self._bounded(self._rpc.get_mint_info(mint))
        except (ProviderError, TimeoutError) as e:
            raise AnalysisFailedError(mint, f"mint account unreadable: {e}") from e
        if mint_info is None:
            raise AnalysisFailedError(mint, "not an SPL token mint")

        # Stage 2: independent market / holder fetches
        accounts, pairs, sol_price = await asyncio.gather(
            self._bounded(self._rpc.get_largest_holders(mint, cfg.holder_sample_size)),
            self._bounded(self._dex.get_token_pairs(mint)),
            self._bounded(self._price_cache.refresh(self._dex.get_sol_price)),
            return_exceptions=True,
        )
        accounts = self._sanitize("largest holders", accounts, [])
        pairs = self._sanitize("market pairs", pairs, None)
        sol_price = self._sanitize("SOL price", sol_price, self._price_cache.get()[0])

        # On-chain fallbacks when the market feed has nothing
        activity: TradeCounts | None = None
        first_seen: int | None = None
        if not pairs:
            activity, first_seen = await asyncio.gather(
                self._bounded(estimate_onchain_activity(
                    self._rpc, mint, sample_size=cfg.activity_sample_size
                )),
                self._bounded(self._rpc.get_wallet_first_seen(mint)),
                return_exceptions=True,
            )
            activity = self._sanitize("on-chain activity", activity, None)
            first_seen = self._sanitize("mint first seen", first_seen, None)

        snapshot = build_token_snapshot(
            mint_info, pairs, sol_price=sol_price, activity=activity, created_at=first_seen
        )
        known_pools = [p.pairAddress for p in pairs or [] if p.pairAddress]

        # Stage 3: creator
        holders = classify_holders(accounts, mint_info.supply, known_pools=known_pools)
        creator_address: str | None = None
        if cfg.enable_creation_slot_search and snapshot.created_at:
            try:
                creator_address = await self._bounded(find_token_creator(
                    self._rpc,
                    mint,
                    snapshot.created_at,
                    radius=cfg.creation_scan_radius,
                    slots_per_second=cfg.slots_per_second,
                    buffer=cfg.slot_search_buffer,
                    max_iterations=cfg.slot_search_max_iterations,
                    tolerance_sec=cfg.slot_match_tolerance_sec,
                    skip_radius=cfg.slot_skip_probe_radius,
                ))
            except TimeoutError:
                logger.warning(f"[ANALYZE] {mint[:12]}: creation slot search timed out")
        if creator_address is None:
            creator_address = guess_creator(holders)
        if creator_address is not None:
            holders = classify_holders(
                accounts, mint_info.supply,
                known_pools=known_pools, creator_address=creator_address,
            )

        # Stage 4: bundle / creator / dev
        async def _none() -> None:
            return None

        bundle, creator, dev = await asyncio.gather(
            self._bounded(detect_bundles(
                self._rpc, mint, holders, snapshot,
                signature_limit=cfg.bundle_signature_limit,
                slot_window=cfg.bundle_slot_window,
                fee_payer_sample=cfg.bundle_fee_payer_sample,
                funder_sample=cfg.funder_sample_size,
            )),
            self._bounded(build_creator_profile(
                self._rpc, self._helius, self._dex, creator_address, mint, holders,
                token_sample=cfg.creator_token_sample, store=self._store,
            )) if creator_address else _none(),
            self._bounded(analyze_dev_activity(
                self._rpc, self._helius, creator_address, mint, mint_info.supply,
            )) if creator_address else _none(),
            return_exceptions=True,
        )
        bundle = self._sanitize("bundle detection", bundle, BundleEvidence())
        creator = self._sanitize("creator profile", creator, None)
        dev = self._sanitize("dev activity", dev, None)

        # Stage 5: depends on the bundle wallets
        wash, quality = await asyncio.gather(
            self._bounded(detect_wash_trading(
                self._rpc, mint, bundle.wallet_addresses, snapshot.txns_24h,
                signature_limit=cfg.wash_signature_limit,
                sample_size=cfg.wash_sample_size,
            )) if bundle.wallet_addresses else _none(),
            self._bounded(assess_bundle_quality(
                self._rpc, mint, bundle, holders, creator_address, snapshot.age_hours,
                sample_size=cfg.wallet_age_sample_size,
            )),
            return_exceptions=True,
        )
        wash = self._sanitize("wash trading", wash, None)
        quality = self._sanitize("bundle quality", quality, None)

        evidence = RiskEvidence(
            snapshot=snapshot,
            holders=tuple(holders),
            creator=creator,
            bundle=bundle,
            quality=quality,
            wash=wash,
            dev=dev,
        )
        assessment = score_risk(evidence, baseline)

        logger.info(
            f"[ANALYZE] {mint[:12]}: {assessment.level.value} score={assessment.score} "
            f"flags={len(assessment.flags)} in {time.monotonic() - started:.1f}s"
        )
        return assessment


def create_analyzer(
    store: ReputationStore | None = None, config: Settings = settings
) -> TokenRiskAnalyzer:
    """Analyzer wired to the configured providers."""
    rpc_url = config.helius_rpc_url or config.solana_rpc_url
    helius = None
    if config.helius_api_key:
        helius = HeliusClient(
            config.helius_api_key,
            max_rps=config.helius_max_rps,
            timeout=config.rpc_timeout_sec,
        )
    else:
        logger.info("[ANALYZE] HELIUS_API_KEY not set: creator history and dev selling unavailable")

    return TokenRiskAnalyzer(
        SolanaRpcClient(rpc_url, max_rps=config.rpc_max_rps, timeout=config.rpc_timeout_sec),
        DexScreenerClient(max_rps=config.dexscreener_max_rps),
        helius=helius,
        store=store,
        config=config,
    )
