"""Entry point for the token risk analyzer.

Usage:
    python -m src.main <mint> [--json] [--force-refresh]
"""

import argparse
import asyncio
import json
import sys

from loguru import logger

from src.db.redis import close_redis, open_reputation_store
from src.models.risk import RiskAssessment
from src.parsers.exceptions import AnalysisFailedError
from src.parsers.pipeline import create_analyzer
from src.parsers.reputation_store import assessment_to_json
from src.utils.logger import setup_logger

EXIT_ANALYSIS_FAILED = 2


def _print_report(assessment: RiskAssessment) -> None:
    print("=" * 65)
    print(f"RISK REPORT  {assessment.token_address}")
    print("=" * 65)
    print(f"\n  Level:  {assessment.level.value}")
    print(f"  Score:  {assessment.score}/100")
    if assessment.flags:
        print("\n  Flags:")
        for flag in assessment.flags:
            print(f"    [{flag.severity.value:<8s}] {flag.type.value:<9s} {flag.message}")
    print(f"\n  {assessment.recommendation}")
    print("\n" + "=" * 65)


async def run(mint: str, *, as_json: bool, force_refresh: bool) -> int:
    store = await open_reputation_store()
    analyzer = create_analyzer(store)
    try:
        assessment = await analyzer.analyze(mint, force_refresh=force_refresh)
    except AnalysisFailedError as e:
        logger.error(f"[ANALYZE] {e}")
        if as_json:
            print(json.dumps({"token_address": e.token_address, "error": "analysis failed", "reason": e.reason}))
        else:
            print(f"ANALYSIS FAILED for {e.token_address}: {e.reason}")
        return EXIT_ANALYSIS_FAILED
    finally:
        await analyzer.close()
        await close_redis()

    if as_json:
        print(assessment_to_json(assessment))
    else:
        _print_report(assessment)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Assess the fraud risk of a Solana token")
    parser.add_argument("mint", help="Token mint address")
    parser.add_argument("--json", action="store_true", help="Print the assessment as JSON")
    parser.add_argument(
        "--force-refresh", action="store_true", help="Ignore the cached assessment"
    )
    args = parser.parse_args()

    setup_logger(level="WARNING" if args.json else "INFO")
    sys.exit(asyncio.run(run(args.mint, as_json=args.json, force_refresh=args.force_refresh)))


if __name__ == "__main__":
    main()
