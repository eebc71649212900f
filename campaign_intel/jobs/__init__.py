"""
Scheduled jobs for campaign intelligence.

- batch_sync: runs the account pipeline for every linked account of every
  valid stored credential, refreshing tokens that are close to expiry and
  invalidating credentials that fail to decrypt, refresh or authenticate.

Isolation Guarantees:
- One credential's failure never stops the next credential.
- An authentication failure stops the remaining accounts of that credential only.

Usage:
    from campaign_intel.jobs import run_batch_sync
    results = await run_batch_sync()
"""

from campaign_intel.jobs.batch_sync import (
    BatchSyncRunner,
    account_result,
    main,
    run_batch_sync,
)


__all__ = [
    'BatchSyncRunner',
    'account_result',
    'run_batch_sync',
    'main',
]
