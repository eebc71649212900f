"""
Campaign Intelligence Package.

Pulls hourly ad performance from the Graph API for every linked ad account,
persists normalized metrics to a shared PostgreSQL store, and produces
what-if projections, pause/scale recommendations and a Markdown executive
summary per account run.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database pool, store handle and dependencies
    - models: Pydantic schemas and enums
    - services: Pipeline stages, Graph API client and orchestrator
    - jobs: Scheduled batch sync across all credentials
    - sql: DDL and parameterized SQL queries
"""

__version__ = "1.0.0"
