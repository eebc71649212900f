'''
Campaign Intelligence Test Suite

Test Modules:
-------------
- test_token_vault.py: AES-256-CBC token storage and credential health
- test_ingestion.py: Graph API insight fetching
  - Pagination, date presets and explicit time ranges
  - Auth vs transient error classification
- test_metrics.py: Raw row normalization and lead counting
- test_campaign_parser.py: Campaign naming convention parsing
- test_date_ranges.py: Campaign, partner and calendar reporting cycles
- test_persistence.py: Chunked upserts, partial success, sync lock, rollups
- test_integrity.py: Post-write integrity checks
- test_simulation.py: Baseline and what-if scenario projections
- test_optimization.py: Pause/scale recommendation rules
- test_executive_summary.py: Markdown executive summary
- test_orchestrator.py: End-to-end pipeline runs and stage failure handling
- test_batch_sync.py: Batch sync over every stored credential
- test_api.py: FastAPI routers via TestClient

Running Tests:
--------------
    pip install -e ".[test]"
    pytest campaign_intel/tests -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

__all__ = []
