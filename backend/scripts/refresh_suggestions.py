"""
Helper script to refresh developer suggestions outside the scheduler

Usage:
  python backend/scripts/refresh_suggestions.py --sweep nightly
  python backend/scripts/refresh_suggestions.py --sweep hourly
  python backend/scripts/refresh_suggestions.py --user-id <ID> [--force]

Notes:
  - Expects DATABASE_URL, JWT_SECRET and GROQ_API_KEY in environment (.env).
  - The hourly sweep queues jobs in-process and waits for them to finish.
"""

import asyncio
import argparse
import logging

from dotenv import load_dotenv

load_dotenv()

from devcollab.core.database import engine  # noqa: E402
from devcollab.main import build_services  # noqa: E402

logger = logging.getLogger("refresh_suggestions")


async def main(sweep: str, user_id: str, force: bool) -> None:
    services = build_services()
    try:
        if user_id:
            if force:
                result = await services.suggestion_service.force_refresh(user_id)
            else:
                result = await services.suggestion_service.get_suggestions(user_id)
            logger.info(
                "Suggestions for %s: %s project ideas (from_cache=%s)",
                user_id, len(result.project_ideas), result.from_cache
            )
            print({"success": True, "data": result.model_dump(by_alias=True)})
            return

        if sweep == "hourly":
            summary = await services.refresh_service.enqueue_stale_users()
            await services.job_queue.drain()
            failed = services.job_queue.list_jobs(status="failed")
            summary["jobs_failed"] = len(failed)
        else:
            summary = await services.refresh_service.refresh_stale_users()

        logger.info(
            "Sweep complete: total=%s processed=%s errors=%s batches=%s",
            summary.get("total"), summary.get("processed"), summary.get("errors"), summary.get("batches")
        )
        print(summary)
    finally:
        await services.job_queue.shutdown()
        await services.inference_client.aclose()
        await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser()
    parser.add_argument("--sweep", choices=["hourly", "nightly"], default="nightly", help="Which refresh sweep to run")
    parser.add_argument("--user-id", help="Regenerate a single user instead of sweeping")
    parser.add_argument("--force", action="store_true", help="With --user-id, ignore a fresh cache")
    args = parser.parse_args()
    asyncio.run(main(args.sweep, args.user_id, args.force))
