from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Redis (reputation store)
    redis_url: str = "redis://localhost:6380/0"
    enable_reputation_cache: bool = True

    # Solana RPC
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_max_rps: float = 10.0
    rpc_timeout_sec: float = 15.0

    # Helius enhanced API (creator history, dev swaps) — optional
    helius_api_key: str = ""
    helius_rpc_url: str = ""
    helius_max_rps: float = 10.0

    # DexScreener (market data, free)
    dexscreener_max_rps: float = 4.0

    # Per-fetch and whole-analysis timeouts
    fetch_timeout_sec: float = 20.0
    analysis_timeout_sec: float = 60.0

    # Sampling — each sampled item costs 1-2 RPC calls
    holder_sample_size: int = 25
    bundle_signature_limit: int = 200
    bundle_slot_window: int = 100
    bundle_fee_payer_sample: int = 5
    funder_sample_size: int = 5
    wallet_age_sample_size: int = 5
    wash_signature_limit: int = 100
    wash_sample_size: int = 50
    creator_token_sample: int = 10
    activity_sample_size: int = 50

    # Slot locator
    slots_per_second: float = 2.5
    slot_search_buffer: int = 10_000
    slot_search_max_iterations: int = 20
    slot_match_tolerance_sec: int = 5
    slot_skip_probe_radius: int = 4
    creation_scan_radius: int = 10
    enable_creation_slot_search: bool = True

    # Caches
    sol_price_ttl_sec: float = 60.0
    sol_price_fallback_usd: float = 150.0
    assessment_cache_ttl_sec: int = 3600
    creator_cache_ttl_sec: int = 86400


settings = Settings()
