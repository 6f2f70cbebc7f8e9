"""Launch plans for production domain.

Only define launch plans here that should run on a schedule in production.
CI/CD registers this file to the production domain on push to main.
If no launch plans are defined here, only the default (manual) launch plans exist.

Current schedules:
- WF1 Artifact Digest: Daily at 10:30 UTC (every symbol in the store,
  after the analysis job has written the day's partition)
"""

from flytekit import CronSchedule, LaunchPlan

from src.shared.config import SIGNAL_WINDOW_DAYS
from src.wf1_artifact_digest.workflow import artifact_digest_workflow

# WF1 Artifact Digest - daily at 10:30 UTC
# Empty symbol list = discover all symbols from daily/ partitions
wf1_prod_daily = LaunchPlan.get_or_create(
    name="wf1_artifact_digest_prod_daily",
    workflow=artifact_digest_workflow,
    default_inputs={
        "symbols": [],
        "run_date": "",
        "window_days": SIGNAL_WINDOW_DAYS,
    },
    schedule=CronSchedule(schedule="30 10 * * *"),
)
