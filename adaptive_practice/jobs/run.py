"""CLI entry point for maintenance job execution."""

import json
import logging
import sys

import click

from adaptive_practice.core.logging import setup_logging
from adaptive_practice.db.session import SessionLocal
from adaptive_practice.jobs.reclassify import recompute_question_stats, reclassify_curated_questions

logger = logging.getLogger(__name__)

JOB_KEYS = ("reclassify", "recompute-stats")


@click.command()
@click.argument("job_key", type=click.Choice(JOB_KEYS))
@click.option("--dry-run", is_flag=True, default=False, help="Report changes without writing them.")
def run(job_key: str, dry_run: bool):
    """
    Run a maintenance job.

    Example:
        python -m adaptive_practice.jobs.run reclassify
    """
    setup_logging()
    db = SessionLocal()
    try:
        if job_key == "reclassify":
            result = reclassify_curated_questions(db, dry_run=dry_run)
        else:
            result = recompute_question_stats(db)
        click.echo(f"Job completed: {json.dumps(result.to_dict(), ensure_ascii=False)}")
    except Exception as e:
        db.rollback()
        logger.error("job_failed", extra={"event": "job_failed", "job": job_key, "error": str(e)}, exc_info=True)
        click.echo(f"Job failed: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    run()
