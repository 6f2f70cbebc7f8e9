"""Launch plans for development domain.

Development schedules run more frequently with smaller symbol sets
for fast iteration and testing.
"""

from flytekit import CronSchedule, LaunchPlan

from src.shared.config import DEV_SYMBOLS, SIGNAL_WINDOW_DAYS
from src.wf1_artifact_digest.workflow import artifact_digest_workflow

# WF1 Artifact Digest - every 6 hours in DEV (3 test symbols)
wf1_dev_schedule = LaunchPlan.get_or_create(
    name="wf1_artifact_digest_dev_6h",
    workflow=artifact_digest_workflow,
    default_inputs={
        "symbols": DEV_SYMBOLS,
        "run_date": "",
        "window_days": SIGNAL_WINDOW_DAYS,
    },
    schedule=CronSchedule(schedule="0 */6 * * *"),
)
